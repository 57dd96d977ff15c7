"""Bind several handler parameters from one JSON body.

POST /greet with {"name": "Alice", "age": 30, "tags": ["new"]}.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import FastAPI

from multibody import FromBody, MultiBody
from multibody.integrations.fastapi import setup_multibody

app = FastAPI()
setup_multibody(app)


@app.post("/greet")
async def greet(
    name: Annotated[str, MultiBody("name")],
    age: Annotated[int, MultiBody("age")],
    tags: FromBody[list[str] | None] = None,
) -> dict[str, Any]:
    return {"message": f"Hello {name} ({age})", "tags": tags or []}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
