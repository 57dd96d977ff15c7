"""Validate a bound value and inspect the errors in the handler.

Without the ``BindingErrors`` parameter a failed validation answers 422.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import FastAPI
from pydantic import BaseModel, ValidationInfo, model_validator

from multibody import BindingErrors, MultiBody, Valid
from multibody.integrations.fastapi import setup_multibody


class Contact(BaseModel):
    name: str
    email: str | None = None

    @model_validator(mode="after")
    def email_on_create(self, info: ValidationInfo) -> Contact:
        hints = (info.context or {}).get("validation_hints", ())
        if "create" in hints and self.email is None:
            message = "email is required"
            raise ValueError(message)
        return self


app = FastAPI()
setup_multibody(app)


@app.post("/contacts")
async def create_contact(
    contact: Annotated[Contact, MultiBody("contact"), Valid(("create",))],
    errors: BindingErrors,
) -> dict[str, Any]:
    if errors.has_errors():
        return {"saved": False, "errors": errors.errors}
    return {"saved": True, "contact": contact.model_dump()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
