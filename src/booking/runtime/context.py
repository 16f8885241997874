"""Process-wide configuration held in a ContextVar.

``config.yaml`` is read once at import. ``with_context`` layers a partial
override on top of whatever is current, for one block of code.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from typing import Any

from pydantic import BaseModel

from src.booking.runtime.config.config_data import ConfigData
from src.booking.runtime.config.config_template import load_config

# Computed fields re-derive themselves from the merged values
_COMPUTED = {"database": {"password", "connection_string"}}


@dataclass
class AppContext:
    config: ConfigData


_app_context: ContextVar[AppContext] = ContextVar(
    "app_context", default=AppContext(config=load_config())
)


def get_context() -> AppContext:
    return _app_context.get()


def set_context(context: AppContext) -> Token[AppContext]:
    return _app_context.set(context)


def get_config() -> ConfigData:
    """Configuration of the current context."""
    return get_context().config


def _explicit_values(model: BaseModel) -> dict[str, Any]:
    """Values the caller actually set, walking into nested sections.

    A section assigned as a whole counts in full; a section that only had
    some of its fields touched contributes just those fields.
    """
    values: dict[str, Any] = {}
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            nested = _explicit_values(value)
            if nested:
                values[name] = nested
            elif name in model.model_fields_set:
                values[name] = value.model_dump()
        elif name in model.model_fields_set:
            values[name] = value
    return values


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@contextmanager
def with_context(config_override: ConfigData | None = None):
    """Run a block with ``config_override`` merged over the current config.

    Example:
        with with_context(ConfigData(rpc=RpcConfig(port=0))):
            assert get_config().rpc.port == 0
    """
    if config_override is None:
        yield
        return
    if not isinstance(config_override, ConfigData):
        raise ValueError(
            f"config_override must be ConfigData or None, got {type(config_override)}"
        )

    base = get_config().model_dump(exclude=_COMPUTED)
    merged = ConfigData.model_validate(_deep_merge(base, _explicit_values(config_override)))
    token = set_context(replace(get_context(), config=merged))
    try:
        yield
    finally:
        _app_context.reset(token)
