"""
Kubernetes label selector parsing and matching.
"""

from dataclasses import dataclass
import re
from typing import Any, Literal

from kresolve.errors import SelectorError

Operator = Literal["=", "!=", "in", "notin", "exists", "!"]

_KEY = r"(?:[A-Za-z0-9][-A-Za-z0-9_.]*/)?[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?"
_VALUE = r"(?:[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?)?"
_KEY_RE = re.compile(f"^{_KEY}$")
_VALUE_RE = re.compile(f"^{_VALUE}$")
_SET_RE = re.compile(r"^(?P<key>\S+)\s+(?P<op>in|notin)\s*\((?P<values>[^()]*)\)$")
_EQ_RE = re.compile(r"^(?P<key>[^!=\s]+)\s*(?P<op>==|=|!=)\s*(?P<value>\S*)$")


def _label_value(value: Any) -> str:
    # Unquoted label values such as `version: 1` or `enabled: true` are loaded as scalars.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Requirement:
    key: str
    operator: Operator
    values: tuple[str, ...] = ()

    def matches(self, labels: dict[str, Any]) -> bool:
        value = _label_value(labels[self.key]) if self.key in labels else None
        match self.operator:
            case "exists":
                return self.key in labels
            case "!":
                return self.key not in labels
            case "=" | "in":
                return value is not None and value in self.values
            case "!=" | "notin":
                return value is None or value not in self.values
        raise AssertionError(self.operator)


@dataclass(frozen=True)
class LabelSelector:
    """
    A parsed label selector. A manifest matches if it satisfies every requirement; the empty selector matches
    everything.
    """

    requirements: tuple[Requirement, ...]

    @staticmethod
    def parse(selector: str) -> "LabelSelector":
        """
        Parse a selector such as `app=web,tier!=cache,env in (prod,staging),!legacy`.

        Raises:
            SelectorError: If the selector is malformed.
        """

        requirements = []
        for term in _split_terms(selector):
            requirements.append(_parse_requirement(term, selector))
        return LabelSelector(tuple(requirements))

    def matches(self, labels: dict[str, Any] | None) -> bool:
        labels = labels or {}
        return all(requirement.matches(labels) for requirement in self.requirements)


def _split_terms(selector: str) -> list[str]:
    # Commas separate requirements, except inside the value list of a set based requirement.
    terms, current, nesting = [], "", 0
    for char in selector:
        if char == "(":
            nesting += 1
        elif char == ")":
            nesting -= 1
            if nesting < 0:
                raise SelectorError(selector, "unbalanced parentheses")
        if char == "," and nesting == 0:
            terms.append(current.strip())
            current = ""
        else:
            current += char
    if nesting != 0:
        raise SelectorError(selector, "unbalanced parentheses")
    terms.append(current.strip())
    if terms == [""]:
        return []
    if "" in terms:
        raise SelectorError(selector, "empty requirement")
    return terms


def _check_key(key: str, selector: str) -> str:
    if not _KEY_RE.match(key):
        raise SelectorError(selector, f"invalid label key {key!r}")
    return key


def _check_value(value: str, selector: str) -> str:
    if len(value) > 63 or not _VALUE_RE.match(value):
        raise SelectorError(selector, f"invalid label value {value!r}")
    return value


def _parse_requirement(term: str, selector: str) -> Requirement:
    if match := _SET_RE.match(term):
        values = tuple(_check_value(value.strip(), selector) for value in match.group("values").split(","))
        operator: Operator = "in" if match.group("op") == "in" else "notin"
        return Requirement(_check_key(match.group("key"), selector), operator, values)

    if match := _EQ_RE.match(term):
        operator = "!=" if match.group("op") == "!=" else "="
        value = _check_value(match.group("value"), selector)
        return Requirement(_check_key(match.group("key"), selector), operator, (value,))

    if term.startswith("!"):
        return Requirement(_check_key(term[1:].strip(), selector), "!")

    return Requirement(_check_key(term, selector), "exists")


_KIND_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


def parse_kinds(selector: str) -> frozenset[str]:
    """
    Parse a comma separated list of kind names.

    Raises:
        SelectorError: If the list is empty or a kind name is malformed.
    """

    kinds = [kind.strip() for kind in selector.split(",")]
    for kind in kinds:
        if not _KIND_RE.match(kind):
            raise SelectorError(selector, f"invalid kind {kind!r}")
    return frozenset(kinds)
