"""Fill an object from the top-level keys of the body.

Both {"order": {"sku": "A1", "quantity": 2}, "note": "gift"} and the flat
{"sku": "A1", "quantity": 2, "note": "gift"} bind the same ``Order``.
A body that matches none of the order fields answers 400.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from pydantic import BaseModel

from multibody import FromBody
from multibody.integrations.fastapi import setup_multibody


class Order(BaseModel):
    sku: str | None = None
    quantity: int = 1


app = FastAPI()
setup_multibody(app)


@app.post("/orders")
async def create_order(order: FromBody[Order], note: FromBody[str | None] = None) -> dict[str, Any]:
    return {"order": order.model_dump(), "note": note}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
