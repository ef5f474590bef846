"""Merge fresh tunnel values into an existing WireGuard configuration.

The merger works on raw lines rather than on a parsed INI model so that
everything it does not own (comments, blank lines, extra peers, PostUp
hooks, odd spacing) survives untouched. It performs no I/O; see
:mod:`wgconnect.generate_wg_conf` for reading and writing the file.

Behaviour in short:

* the first assignment whose key matches a pending update gets its value
  replaced, keeping the text left of ``=`` and the whitespace right after
  it exactly as they were;
* later duplicates of an already updated key are left alone;
* updates whose key never appeared are inserted right after their anchor
  (a section header or a sibling field), in update order;
* updates with an empty value are ignored entirely;
* a missing anchor aborts the whole merge with :class:`PlacementError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence, Union

from .logging_utils import get_logger

LOGGER = get_logger(__name__)

DEFAULT_SPACING = " "


class ConfigMergeError(RuntimeError):
    """Base class for configuration merge failures."""


class PlacementError(ConfigMergeError):
    """Raised when a new field has no anchor line to be inserted after."""

    def __init__(self, field_name: str):
        super().__init__(f"could not place field {field_name}")
        self.field_name = field_name


class MalformedLineError(ConfigMergeError):
    """Raised when a line contains ``=`` but no usable key."""

    def __init__(self, line: str):
        super().__init__(f"cannot parse key from line: {line!r}")
        self.line = line


@dataclass
class ConfigDocument:
    """Ordered lines of a configuration file."""

    lines: List[str] = field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> "ConfigDocument":
        return cls(text.splitlines())

    def to_text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class Assignment:
    """A ``key = value`` line split into its parts.

    ``key`` is everything left of the first ``=`` (surrounding whitespace
    included) and ``spacing`` the whitespace run right after the ``=``.
    """

    key: str
    spacing: str
    value: str


def parse_assignment(line: str) -> Optional[Assignment]:
    """Split ``line`` on its first ``=``.

    Returns ``None`` for lines without ``=`` and raises
    :class:`MalformedLineError` when the left-hand side is blank.
    """

    if "=" not in line:
        return None
    key, rest = line.split("=", 1)
    if not key.strip():
        raise MalformedLineError(line)
    value = rest.lstrip()
    return Assignment(key=key, spacing=rest[: len(rest) - len(value)], value=value)


def key_pattern(*words: str) -> Pattern[str]:
    """Case-insensitive key matcher tolerating whitespace around and between ``words``."""

    body = r"\s*".join(re.escape(word) for word in words)
    return re.compile(rf"^\s*{body}\s*$", re.IGNORECASE)


def format_assignment(name: str, value: str, spacing: str = DEFAULT_SPACING) -> str:
    return f"{name}{spacing}={spacing}{value}"


@dataclass(frozen=True)
class SectionAnchor:
    """Insert right after the section header ``header`` (e.g. ``[Peer]``)."""

    header: str

    def matches(self, line: str) -> bool:
        # Bracket text is case-sensitive, leading indentation is not significant.
        return line.lstrip().startswith(self.header)


@dataclass(frozen=True)
class FieldAnchor:
    """Insert right after the line assigning sibling field ``field_name``."""

    field_name: str
    pattern: Pattern[str]

    def matches(self, line: str) -> bool:
        try:
            assignment = parse_assignment(line)
        except MalformedLineError:
            return False
        return assignment is not None and self.pattern.match(assignment.key) is not None


Anchor = Union[SectionAnchor, FieldAnchor]


@dataclass(frozen=True)
class FieldUpdate:
    """New value for one logical field plus where it goes if absent."""

    name: str
    value: Optional[str]
    pattern: Pattern[str]
    anchor: Anchor

    @property
    def applicable(self) -> bool:
        """Empty or missing values mean "leave the document alone"."""

        return bool(self.value)

    def matches_key(self, key: str) -> bool:
        return self.pattern.match(key) is not None


def find_anchor(lines: Sequence[str], anchor: Anchor) -> Optional[int]:
    """Return the index right after the first line matching ``anchor``."""

    return next(
        (index + 1 for index, line in enumerate(lines) if anchor.matches(line)),
        None,
    )


def merge(document: ConfigDocument, updates: Sequence[FieldUpdate]) -> ConfigDocument:
    """Apply ``updates`` to ``document`` and return a new document.

    ``document`` itself is never modified. On :class:`PlacementError`
    nothing is returned, so callers cannot persist a half-merged result.
    """

    pending = [update for update in updates if update.applicable]
    skipped = [update.name for update in updates if not update.applicable]
    if skipped:
        LOGGER.debug("Skipping empty updates", extra={"fields": skipped})

    output: List[str] = []
    spacing = DEFAULT_SPACING

    for line in document.lines:
        try:
            assignment = parse_assignment(line)
        except MalformedLineError as exc:
            LOGGER.debug("Passing through unparsable line", extra={"line": exc.line})
            output.append(line)
            continue

        if assignment is None:
            output.append(line)
            continue

        update = next((u for u in pending if u.matches_key(assignment.key)), None)
        if update is None:
            output.append(line)
            continue

        output.append(f"{assignment.key}={assignment.spacing}{update.value}")
        spacing = assignment.spacing
        pending.remove(update)
        LOGGER.debug("Replaced field", extra={"field": update.name})

    for update in pending:
        index = find_anchor(output, update.anchor)
        if index is None:
            LOGGER.warning("No anchor for field", extra={"field": update.name})
            raise PlacementError(update.name)
        output.insert(index, format_assignment(update.name, update.value, spacing))
        LOGGER.debug("Inserted field", extra={"field": update.name, "index": index})

    return ConfigDocument(output)


INTERFACE_SECTION = SectionAnchor("[Interface]")
PEER_SECTION = SectionAnchor("[Peer]")

ADDRESS_KEY = key_pattern("Address")
PRIVATE_KEY_KEY = key_pattern("Private", "Key")
PUBLIC_KEY_KEY = key_pattern("Public", "Key")
ENDPOINT_KEY = key_pattern("End", "Point")
DNS_KEY = key_pattern("DNS")


def tunnel_updates(
    address: Optional[str],
    private_key: Optional[str],
    public_key: Optional[str],
    endpoint: Optional[str],
    dns: Optional[str] = None,
) -> List[FieldUpdate]:
    """Updates for a freshly negotiated tunnel identity.

    The order matters: each field anchored on a sibling comes after that
    sibling, so a document missing both still ends up with both.
    """

    return [
        FieldUpdate("Address", address, ADDRESS_KEY, INTERFACE_SECTION),
        FieldUpdate("PrivateKey", private_key, PRIVATE_KEY_KEY, FieldAnchor("Address", ADDRESS_KEY)),
        FieldUpdate("PublicKey", public_key, PUBLIC_KEY_KEY, PEER_SECTION),
        FieldUpdate("Endpoint", endpoint, ENDPOINT_KEY, FieldAnchor("PublicKey", PUBLIC_KEY_KEY)),
        FieldUpdate("DNS", dns, DNS_KEY, FieldAnchor("PrivateKey", PRIVATE_KEY_KEY)),
    ]
