from typing import Generic, TypeVar

from rivnitz_live.shared.api.utils import ApiSuccess

T = TypeVar("T")


class ApiOut(ApiSuccess, Generic[T]):
    """Standard API envelope used by the operator routers."""

    results: T  # type: ignore[valid-type]
