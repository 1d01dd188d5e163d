"""pytest decorators re-typed so decorated test functions keep their signatures."""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

import pytest

_TestFunc = TypeVar("_TestFunc", bound=Callable[..., object])
_Decorator = Callable[[_TestFunc], _TestFunc]


def typed_fixture(*args: Any, **kwargs: Any) -> "_Decorator[_TestFunc]":
    """``pytest.fixture`` that does not erase the fixture's type."""

    decorator = pytest.fixture(*args, **kwargs)
    return cast("_Decorator[_TestFunc]", decorator)


def typed_parametrize(
    argnames: Any, argvalues: Any, **kwargs: Any
) -> "_Decorator[_TestFunc]":
    """``pytest.mark.parametrize`` that does not erase the test's type."""

    marker = pytest.mark.parametrize(argnames, argvalues, **kwargs)
    return cast("_Decorator[_TestFunc]", marker)


__all__ = ["typed_fixture", "typed_parametrize"]
