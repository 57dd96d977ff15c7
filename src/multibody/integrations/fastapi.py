from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any, cast

from multibody.binder import MultiBodyBinder
from multibody.context import BindingContext, RequestJsonCache
from multibody.descriptors import MultiBodyCallableInspection, MultiBodyCallableInspector
from multibody.exceptions import MissingParameterNameError, MultiBodyError, ValidationFailedError
from multibody.settings import MultiBodySettings

try:
    from fastapi import FastAPI, Request
    from fastapi.responses import JSONResponse
    from fastapi.routing import APIRoute
    from starlette.concurrency import run_in_threadpool
except ModuleNotFoundError as exc:  # pragma: no cover - exercised in optional import scenarios
    message = "FastAPI integration requires fastapi. Install with 'multibody[fastapi]'."
    raise ModuleNotFoundError(message) from exc

logger = logging.getLogger(__name__)

_MULTIBODY_WRAPPED_ATTR = "__multibody_wrapped__"
_REQUEST_KWARG = "__multibody_request"
_ENDPOINT_ARG_INDEX = 1


def _is_multibody_wrapped(endpoint: Callable[..., Any]) -> bool:
    return bool(getattr(endpoint, _MULTIBODY_WRAPPED_ATTR, False))


def bind_multibody(
    endpoint: Callable[..., Any],
    *,
    binder: MultiBodyBinder | None = None,
    settings: MultiBodySettings | None = None,
) -> Callable[..., Any]:
    """Wrap an endpoint so its ``MultiBody`` parameters are bound from the JSON body.

    Endpoints without ``MultiBody`` parameters and endpoints that are already
    wrapped are returned unchanged. The wrapper hides bound parameters and
    ``BindingErrors`` sinks from FastAPI and asks for the ``Request`` instead.
    """
    if _is_multibody_wrapped(endpoint):
        return endpoint
    settings = settings or MultiBodySettings()
    inspection = MultiBodyCallableInspector(settings=settings).inspect_callable(endpoint)
    if not inspection.has_bindings:
        return endpoint
    return _build_wrapper(endpoint, inspection, binder=binder or MultiBodyBinder(), settings=settings)


def _build_wrapper(
    endpoint: Callable[..., Any],
    inspection: MultiBodyCallableInspection,
    *,
    binder: MultiBodyBinder,
    settings: MultiBodySettings,
) -> Callable[..., Any]:
    is_async = inspect.iscoroutinefunction(endpoint)

    @functools.wraps(endpoint)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        request = cast("Request", kwargs.pop(_REQUEST_KWARG))
        context = BindingContext(RequestJsonCache(request.body, encoding=settings.body_encoding))
        for descriptor in inspection.descriptors:
            kwargs[cast("str", descriptor.parameter_name)] = await binder.bind_in_context(
                descriptor,
                context,
            )
        for sink in inspection.sink_parameters:
            kwargs[sink.name] = context.errors_for(sink.target)
        if is_async:
            return await endpoint(*args, **kwargs)
        return await run_in_threadpool(endpoint, *args, **kwargs)

    # FastAPI unwraps decorated endpoints; it must see this coroutine, not a sync endpoint.
    del wrapper.__wrapped__  # type: ignore[attr-defined]
    wrapper.__signature__ = _with_request_parameter(inspection.public_signature)  # type: ignore[attr-defined]
    setattr(wrapper, _MULTIBODY_WRAPPED_ATTR, True)
    logger.info(
        "Bound %d multibody param(s) for endpoint %s",
        len(inspection.descriptors),
        getattr(endpoint, "__qualname__", endpoint),
    )
    return wrapper


def _with_request_parameter(signature: inspect.Signature) -> inspect.Signature:
    request_parameter = inspect.Parameter(
        _REQUEST_KWARG,
        inspect.Parameter.KEYWORD_ONLY,
        annotation=Request,
    )
    parameters = list(signature.parameters.values())
    insert_at = len(parameters)
    if parameters and parameters[-1].kind is inspect.Parameter.VAR_KEYWORD:
        insert_at -= 1
    parameters.insert(insert_at, request_parameter)
    return signature.replace(parameters=parameters)


def _swap_route_endpoint(
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    wrap: Callable[[Callable[..., Any]], Callable[..., Any]],
) -> tuple[Any, ...]:
    """Replace the endpoint among ``APIRoute`` init arguments; ``kwargs`` is updated in place."""
    if "endpoint" in kwargs:
        kwargs["endpoint"] = wrap(kwargs["endpoint"])
        return args
    if len(args) <= _ENDPOINT_ARG_INDEX:
        message = "APIRoute was created without an endpoint."
        raise TypeError(message)
    endpoint = wrap(args[_ENDPOINT_ARG_INDEX])
    return (*args[:_ENDPOINT_ARG_INDEX], endpoint, *args[_ENDPOINT_ARG_INDEX + 1 :])


def _build_route_class(binder: MultiBodyBinder, settings: MultiBodySettings) -> type[MultiBodyRoute]:
    class _ConfiguredMultiBodyRoute(MultiBodyRoute):
        multibody_binder = binder
        multibody_settings = settings

    _ConfiguredMultiBodyRoute.__name__ = "MultiBodyRoute_configured"
    return _ConfiguredMultiBodyRoute


def _rebuild_route(route: APIRoute, endpoint: Callable[..., Any]) -> APIRoute:
    """Create a copy of ``route`` serving ``endpoint``, reading init arguments back from the route."""
    route_cls = type(route)
    replaced = {"endpoint": endpoint, "methods": route.methods}
    init_kwargs: dict[str, Any] = {}
    for name, parameter in inspect.signature(route_cls.__init__).parameters.items():
        if name == "self" or parameter.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue
        if name in replaced:
            init_kwargs[name] = replaced[name]
        elif hasattr(route, name):
            init_kwargs[name] = getattr(route, name)
        elif parameter.default is inspect.Parameter.empty:
            message = f"Cannot rebuild route {route.path}: no value for '{name}'."
            raise RuntimeError(message)
    return route_cls(**init_kwargs)


def _wrap_existing_routes(
    routes: list[Any],
    *,
    binder: MultiBodyBinder,
    settings: MultiBodySettings,
) -> None:
    updated_routes: list[Any] = []
    for route in routes:
        if not isinstance(route, APIRoute):
            updated_routes.append(route)
            continue
        wrapped = bind_multibody(route.endpoint, binder=binder, settings=settings)
        if wrapped is route.endpoint:
            updated_routes.append(route)
            continue
        updated_routes.append(_rebuild_route(route, wrapped))
    routes[:] = updated_routes


class MultiBodyRoute(APIRoute):
    """FastAPI route that binds ``MultiBody`` parameters from the shared JSON body."""

    multibody_binder: MultiBodyBinder | None = None
    multibody_settings: MultiBodySettings | None = None

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        args = _swap_route_endpoint(
            args,
            kwargs,
            functools.partial(
                bind_multibody,
                binder=self.multibody_binder,
                settings=self.multibody_settings,
            ),
        )
        super().__init__(*args, **kwargs)


def multibody_error_handler(settings: MultiBodySettings) -> Callable[[Request, Exception], Any]:
    """Build an exception handler answering binding failures with a JSON error body."""

    async def handle(_request: Request, exc: Exception) -> JSONResponse:
        error = cast("MultiBodyError", exc)
        if isinstance(error, ValidationFailedError):
            status_code = settings.validation_failed_status_code
        elif isinstance(error, MissingParameterNameError):
            status_code = error.status_code
        else:
            status_code = settings.client_error_status_code
        return JSONResponse(status_code=status_code, content=error.to_payload())

    return handle


def setup_multibody(
    app: FastAPI,
    *,
    binder: MultiBodyBinder | None = None,
    settings: MultiBodySettings | None = None,
) -> None:
    """Configure FastAPI to bind ``MultiBody`` parameters on new and existing routes."""
    settings = settings or MultiBodySettings()
    binder = binder or MultiBodyBinder()

    app.state.multibody_binder = binder
    app.state.multibody_settings = settings
    app.router.route_class = _build_route_class(binder, settings)
    _wrap_existing_routes(app.router.routes, binder=binder, settings=settings)
    if settings.install_exception_handlers:
        app.add_exception_handler(MultiBodyError, multibody_error_handler(settings))
        logger.info("Installed multibody exception handlers")


__all__ = ["MultiBodyRoute", "bind_multibody", "multibody_error_handler", "setup_multibody"]
