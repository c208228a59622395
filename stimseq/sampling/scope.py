from enum import Enum
from typing import Any, Callable

from ..error import InvalidContextError, InvalidScopeError


class Scope(str, Enum):
    PER_TRIAL = "per_trial"
    PER_BLOCK = "per_block"
    PER_SESSION = "per_session"


valid_scopes = [scope.value for scope in Scope]
valid_context_kinds = ["block", "session"]


class ScopeManager:
    """
    Caches sampled values at block or session granularity.

    * ``per_trial`` values are never cached: every request draws a fresh value.
    * ``per_block`` values are cached until the block context changes.
    * ``per_session`` values are cached until the session context is (re)set.

    Cache keys are parameter names, so two fields sharing a name also share
    their cached value.
    """

    def __init__(self):
        self.session_cache = {}
        self.block_cache = {}
        self.current_block_id = ""

    def set_context(self, kind: str, context_id):
        if kind == "block":
            # Re-entering the current block must not trigger resampling.
            if self.current_block_id != context_id:
                self.current_block_id = context_id
                self.block_cache = {}
        elif kind == "session":
            self.session_cache = {}
            self.block_cache = {}
            self.current_block_id = ""
        else:
            raise InvalidContextError(
                f"context kind must be one of {valid_context_kinds} (got {kind!r})."
            )

    def get_or_sample(self, param_name: str, scope: str, sample_fn: Callable[[], Any]):
        if scope == Scope.PER_TRIAL:
            return sample_fn()
        elif scope == Scope.PER_BLOCK:
            cache = self.block_cache
        elif scope == Scope.PER_SESSION:
            cache = self.session_cache
        else:
            raise InvalidScopeError(
                f"scope must be one of {valid_scopes} (got {scope!r})."
            )

        if param_name not in cache:
            cache[param_name] = sample_fn()
        return cache[param_name]

    def clear_block_cache(self):
        self.block_cache = {}

    def clear_all(self):
        self.session_cache = {}
        self.block_cache = {}

    def get_cached_values(self):
        return {
            "session": dict(self.session_cache),
            "block": dict(self.block_cache),
        }
