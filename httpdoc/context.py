"""Variable context shared across one document parse.

A Context is created once per parse, filled in document order by variable
declarations and pre-request scripts, and passed explicitly to every handler
that resolves ``{{...}}`` placeholders.
"""

from __future__ import annotations

import datetime
import logging
import os
import random
import time
import uuid
from typing import Callable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DynamicProvider = Callable[[], str]


def current_date() -> str:
    return datetime.date.today().strftime("%Y-%m-%d")


def unix_timestamp() -> str:
    return str(int(time.time()))


def iso_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")


def random_uuid() -> str:
    return str(uuid.uuid4())


def random_int() -> str:
    return str(random.randint(0, 1000))


DEFAULT_DYNAMIC_VARIABLES: dict[str, DynamicProvider] = {
    "date": current_date,
    "timestamp": unix_timestamp,
    "isoTimestamp": iso_timestamp,
    "uuid": random_uuid,
    "randomInt": random_int,
}


class Context:
    """Mutable variable environment for one document parse.

    Attributes:
        vars: Resolved variables declared in the document or set by scripts.
        env: Variables loaded from a dotenv file. Looked up after ``vars``
            and before the process environment.
        dynamic: Computed variables, keyed by name without the ``$`` sigil.
    """

    __slots__ = ("vars", "env", "dynamic")

    def __init__(self, vars: dict[str, str] | None = None) -> None:
        self.vars: dict[str, str] = dict(vars or {})
        self.env: dict[str, str] = {}
        self.dynamic: dict[str, DynamicProvider] = {}
        for name, provider in DEFAULT_DYNAMIC_VARIABLES.items():
            self.register_dynamic(name, provider)

    def __repr__(self) -> str:
        return f"Context(vars={self.vars!r}, dynamic={sorted(self.dynamic)!r})"

    def set(self, name: str, value: str) -> None:
        self.vars[name] = value

    def get(self, name: str) -> str | None:
        return self.vars.get(name)

    def register_dynamic(self, name: str, provider: DynamicProvider) -> None:
        self.dynamic[name.lstrip("$")] = provider

    def lookup_env(self, name: str) -> str | None:
        if name in self.env:
            return self.env[name]
        return os.environ.get(name)

    def load_env_file(self, path: str) -> None:
        """Load a dotenv file into the environment layer.

        Raises:
            FileNotFoundError: If *path* does not exist.
        """
        if not os.path.isfile(path):
            raise FileNotFoundError(f"env file not found: {path}")
        loaded = dotenv_values(path)
        for name, value in loaded.items():
            # Keys without a value (``FOO`` alone) come back as None
            if value is not None:
                self.env[name] = value
        logger.debug("loaded %d variables from %s", len(loaded), path)
