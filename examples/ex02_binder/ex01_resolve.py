"""Use the binder directly, without a web framework."""

from __future__ import annotations

from typing import Annotated

from multibody import BindingDescriptor, Failure, MultiBody, MultiBodyBinder
from multibody.types import Char, Short


def main() -> None:
    binder = MultiBodyBinder()
    body = '{"name": "Alice", "code": 70000, "initial": ""}'

    name = BindingDescriptor.from_annotation("name", Annotated[str, MultiBody()])
    code = BindingDescriptor.from_annotation("code", Annotated[Short, MultiBody()])
    initial = BindingDescriptor.from_annotation("initial", Annotated[Char, MultiBody()])
    missing = BindingDescriptor.from_annotation("age", Annotated[int, MultiBody("age")])

    print(binder.resolve(name, body))  # => Bound(value='Alice')
    print(binder.resolve(code, body))  # => Bound(value=4464)
    print(binder.resolve(initial, body))  # => Absent()

    result = binder.resolve(missing, body)
    if isinstance(result, Failure):
        print(result.error)  # => required param age is not present


if __name__ == "__main__":
    main()
