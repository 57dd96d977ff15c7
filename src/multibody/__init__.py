from multibody.binder import MultiBodyBinder
from multibody.context import BindingContext, RequestJsonCache
from multibody.descriptors import BindingDescriptor, MultiBodyCallableInspector
from multibody.exceptions import (
    MalformedBodyError,
    MissingParameterNameError,
    MissingRequiredKeyError,
    MultiBodyError,
    StructuralDecodeError,
    ValidationFailedError,
)
from multibody.markers import BindingErrors, FromBody, MultiBody, Valid
from multibody.results import Absent, BindingResult, Bound, Failure
from multibody.settings import MultiBodySettings
from multibody.shapes import PrimitiveKind, shape_from_annotation
from multibody.validation import PydanticValidator, Validator

__all__ = [
    "Absent",
    "BindingContext",
    "BindingDescriptor",
    "BindingErrors",
    "BindingResult",
    "Bound",
    "Failure",
    "FromBody",
    "MalformedBodyError",
    "MissingParameterNameError",
    "MissingRequiredKeyError",
    "MultiBody",
    "MultiBodyBinder",
    "MultiBodyCallableInspector",
    "MultiBodyError",
    "MultiBodySettings",
    "PrimitiveKind",
    "PydanticValidator",
    "RequestJsonCache",
    "StructuralDecodeError",
    "Valid",
    "ValidationFailedError",
    "Validator",
    "shape_from_annotation",
]
