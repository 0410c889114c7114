"""
Typed coercion of decoded config data (plain dicts/lists/scalars) into
annotated dataclasses.

Every failure names the offending field with a JSON-path-like location
(`$.syntax[1].block_start`), so config mistakes can be fixed without
guessing. Set TPLC_TYPED_DEBUG=1 to trace each coercion step.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
import typing as t
from dataclasses import fields, is_dataclass
from enum import Enum
from types import UnionType
from typing import Any, get_args, get_origin

from pydantic import BaseModel, ValidationError

from .errors import ConfigError

_LOG = logging.getLogger("tplc.config.typed")


def _setup_logging_once() -> None:
    if getattr(_setup_logging_once, "_inited", False):
        return
    _setup_logging_once._inited = True  # type: ignore[attr-defined]
    if os.environ.get("TPLC_TYPED_DEBUG"):
        _LOG.setLevel(logging.DEBUG)
        if not _LOG.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
            _LOG.addHandler(handler)


_setup_logging_once()


class ConfigLoadError(ConfigError):
    """Decoded config does not match the expected shape; the message starts with the field path."""
    pass


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", str(tp))


def _err(path: str, msg: str) -> ConfigLoadError:
    _LOG.debug("RAISE at %s: %s", path, msg)
    return ConfigLoadError(f"{path}: {msg}")


def _strip_annotated(tp: Any) -> Any:
    if get_origin(tp) is t.Annotated:
        args = get_args(tp)
        return args[0] if args else Any
    return tp


def _is_optional(tp: Any) -> bool:
    tp = _strip_annotated(tp)
    return get_origin(tp) in (t.Union, UnionType) and type(None) in get_args(tp)


def _coerce_literal(val: Any, tp: Any, path: str) -> Any:
    allowed = get_args(tp)
    if val in allowed:
        return val
    raise _err(path, f"expected one of {list(allowed)}, got {val!r}")


def _coerce_enum(val: Any, tp: Any, path: str) -> Any:
    if isinstance(val, tp):
        return val
    try:
        return tp(val)
    except ValueError:
        allowed = [m.value for m in tp]
        raise _err(path, f"expected one of {allowed}, got {val!r}") from None


def _coerce_union(val: Any, tp: Any, path: str) -> Any:
    variants = get_args(tp)
    if val is None and type(None) in variants:
        return None
    errors: list[str] = []
    for sub in variants:
        if sub is type(None):
            continue
        try:
            return load_typed(sub, val, path=path)
        except ConfigLoadError as e:
            errors.append(str(e))
    raise _err(path, " | ".join(errors) or f"no variant of {_type_name(tp)} matched")


def _coerce_mapping(val: Any, tp: Any, path: str) -> Any:
    if not isinstance(val, dict):
        raise _err(path, f"expected a table, got {type(val).__name__}")
    kt, vt = get_args(tp) or (Any, Any)
    return {
        load_typed(kt, k, path=f"{path}.<key>"): load_typed(vt, v, path=f"{path}.{k}")
        for k, v in val.items()
    }


def _coerce_sequence(val: Any, tp: Any, path: str) -> Any:
    origin = get_origin(tp)
    if not isinstance(val, (list, tuple)):
        raise _err(path, f"expected a list, got {type(val).__name__}")
    args = get_args(tp)
    if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
        args = (args[0],)
    (et,) = args or (Any,)
    items = [load_typed(et, v, path=f"{path}[{i}]") for i, v in enumerate(val)]
    if origin is tuple:
        return tuple(items)
    if origin in (set, frozenset):
        return origin(items)
    return items


def _resolve_type_hints(tp: Any) -> dict[str, Any]:
    # String annotations (from __future__ import annotations) are evaluated
    # against the module that defines the dataclass.
    module = sys.modules.get(tp.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    return t.get_type_hints(tp, globalns=globalns, include_extras=True)


def _coerce_dataclass(val: Any, tp: Any, path: str) -> Any:
    if not isinstance(val, dict):
        raise _err(path, f"expected a table for {_type_name(tp)}, got {type(val).__name__}")
    hints = _resolve_type_hints(tp)
    field_map = {f.name: f for f in fields(tp)}
    extras = set(val) - set(field_map)
    if extras:
        raise _err(path, f"unknown key(s): {sorted(extras)}")

    kwargs: dict[str, Any] = {}
    for name, f in field_map.items():
        sub_path = f"{path}.{name}"
        ftype = hints.get(name, f.type)
        if name in val:
            kwargs[name] = load_typed(ftype, val[name], path=sub_path)
        elif f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        elif _is_optional(ftype):
            kwargs[name] = None
        else:
            raise _err(sub_path, "required field missing")
    inst = tp(**kwargs)
    _LOG.debug("Built %s at %s: %r", _type_name(tp), path, inst)
    return inst


def _coerce_pydantic(val: Any, tp: Any, path: str) -> Any:
    try:
        return tp.model_validate(val)
    except ValidationError as e:
        raise _err(path, f"validation error: {e}") from None


def load_typed(tp: Any, val: Any, *, path: str = "$") -> Any:
    """
    Recursively coerce raw decoded data into the annotated type tp.

    Supports dataclasses, pydantic models, Optional/Union, Literal, Enum,
    list/tuple/set, dict and the primitive scalars.

    Raises:
        ConfigLoadError: With the path of the first mismatching field
    """
    tp = _strip_annotated(tp)
    origin = get_origin(tp)
    _LOG.debug("load_typed: path=%s, tp=%s, val-type=%s", path, _type_name(tp), type(val).__name__)

    if tp is Any or tp is object:
        return val
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        return _coerce_pydantic(val, tp, path)
    if isinstance(tp, type) and is_dataclass(tp):
        return _coerce_dataclass(val, tp, path)
    if origin is t.Literal:
        return _coerce_literal(val, tp, path)
    if origin in (t.Union, UnionType):
        return _coerce_union(val, tp, path)
    if origin is dict:
        return _coerce_mapping(val, tp, path)
    if origin in (list, tuple, set, frozenset):
        return _coerce_sequence(val, tp, path)
    if isinstance(tp, type) and issubclass(tp, Enum):
        return _coerce_enum(val, tp, path)
    if tp is type(None):
        if val is None:
            return None
        raise _err(path, f"expected nothing, got {type(val).__name__}")

    if tp in (str, int, float, bool):
        # bool is an int subclass; never accept it where a number is expected.
        if not isinstance(val, tp) or (tp is not bool and isinstance(val, bool)):
            raise _err(path, f"expected {_type_name(tp)}, got {type(val).__name__}")
        return val

    raise _err(path, f"unsupported annotation {tp!r}")


__all__ = ["load_typed", "ConfigLoadError"]
