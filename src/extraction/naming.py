"""
Naming Strategy

Generated documents are named ``{base}-{token}.pdf``. The token formats are
declared once here and used both to write names and to strip a previous
suffix, so extracting from an already generated document does not pile up
tokens.
"""

import re
import secrets
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

SEPARATOR = "-"
DEFAULT_EXTENSION = ".pdf"
FALLBACK_BASE = "document"

UUID_TOKEN_PATTERN = r"[0-9a-f]{32}"
TIMESTAMP_TOKEN_PATTERN = r"\d{13,}-[0-9a-f]{6}"

TOKEN_RE = re.compile(f"(?:{UUID_TOKEN_PATTERN}|{TIMESTAMP_TOKEN_PATTERN})")
GENERATED_STEM_RE = re.compile(f"(?P<base>.+){SEPARATOR}(?P<token>{TOKEN_RE.pattern})")

TokenFactory = Callable[[], str]


def uuid_token() -> str:
    """Random 128-bit token."""
    return uuid.uuid4().hex


class TimestampToken:
    """
    Millisecond timestamp token.

    The timestamp never repeats within a process (same-millisecond calls are
    bumped forward) and a short random tail separates processes.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            now = int(self._clock() * 1000)
            if now <= self._last:
                now = self._last + 1
            self._last = now
        return f"{now:013d}-{secrets.token_hex(3)}"


@dataclass(frozen=True)
class GeneratedName:
    """A generated filename split into its parts."""
    base: str
    token: str
    extension: str = DEFAULT_EXTENSION

    @property
    def filename(self) -> str:
        return f"{self.base}{SEPARATOR}{self.token}{self.extension}"

    @classmethod
    def parse(cls, filename: str) -> Optional["GeneratedName"]:
        """Split a generated filename, or None if it was not generated here."""
        stem, dot, rest = filename.partition(".")
        match = GENERATED_STEM_RE.fullmatch(stem)
        if not match:
            return None
        return cls(base=match.group("base"), token=match.group("token"), extension=dot + rest)


class NamingStrategy:
    """Derive collision-resistant names for generated documents."""

    def __init__(self, token_factory: TokenFactory = uuid_token, extension: str = DEFAULT_EXTENSION):
        self.token_factory = token_factory
        self.extension = extension

    @staticmethod
    def base_name(source_reference: str) -> str:
        """
        Base name of a source reference.

        Takes the final path segment, drops everything from the first ``.``
        and strips a uniqueness suffix this strategy appended earlier.
        """
        filename = source_reference.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
        parsed = GeneratedName.parse(filename)
        base = parsed.base if parsed else filename.split(".", 1)[0]
        return base or FALLBACK_BASE

    def generate(self, source_reference: str, token_factory: Optional[TokenFactory] = None) -> GeneratedName:
        """
        Build a new name for a document derived from ``source_reference``.

        Raises:
            ValueError: The token factory produced a token in an unknown format
        """
        token = (token_factory or self.token_factory)()
        if not TOKEN_RE.fullmatch(token):
            raise ValueError(f"Unrecognized uniqueness token format: {token!r}")
        return GeneratedName(
            base=self.base_name(source_reference),
            token=token,
            extension=self.extension,
        )

    def generate_name(self, source_reference: str, token_factory: Optional[TokenFactory] = None) -> str:
        return self.generate(source_reference, token_factory).filename


def token_factory_for(name: str) -> TokenFactory:
    """Token factory for a configured token kind (``uuid`` or ``timestamp``)."""
    if name == "uuid":
        return uuid_token
    if name == "timestamp":
        return TimestampToken()
    raise ValueError(f"Unknown token kind: {name}")
