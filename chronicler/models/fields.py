"""Reusable constrained field types."""

from typing import Annotated

from pydantic import AfterValidator, HttpUrl, TypeAdapter

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    # Validate the shape but keep the original string untouched.
    _http_url.validate_python(value)
    return value


UrlString = Annotated[str, AfterValidator(_check_url)]
