"""
Archetype classification - assign every class one of four colour categories.

Categories (Coad's colour archetypes):
- ppt: party, place or thing
- role: a way a party participates
- desc: a catalog-like description
- moment: a moment or interval worth tracking

Explicit metadata on a class always wins. Otherwise the name is lower-cased
and run through RULES in order; the first matching rule decides and PPT is
the default, so classification is total.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, TYPE_CHECKING

from .models import Archetype

if TYPE_CHECKING:
    from .models import ModelClass


DESCRIPTION_KEYWORDS = frozenset({
    "description", "descriptor", "category", "type", "kind", "specification",
    "catalog", "catalogue", "catalogentry", "classification", "grade",
    "template", "blueprint", "model", "plan", "tariff", "pricelist",
})

DESCRIPTION_SUFFIXES = (
    "type", "status", "policy", "category", "kind", "spec", "specification",
    "description", "descriptor", "definition", "template", "catalog", "rule",
    "config", "configuration", "class", "level",
)

MOMENT_KEYWORDS = frozenset({
    "order", "orderline", "lineitem", "invoice", "invoiceline", "payment",
    "sale", "purchase", "shipment", "delivery", "reservation", "booking",
    "transaction", "rental", "loan", "contract", "agreement", "registration",
    "appointment", "visit", "event", "session", "request", "approval",
    "inspection", "assessment", "enrollment", "enrolment", "transfer",
    "return", "refund", "claim", "incident", "meeting", "trip", "journey",
    "cart", "quote", "subscription", "receipt",
})

PPT_KEYWORDS = frozenset({
    "customer", "person", "party", "organization", "organisation", "company",
    "user", "product", "item", "article", "address", "place", "location",
    "site", "building", "room", "store", "shop", "warehouse", "account",
    "vehicle", "asset", "device", "document", "container", "computer",
    "server", "printer", "paper", "folder", "letter", "poster", "meter",
    "counter", "center", "centre", "tower", "locker", "trailer", "tractor",
    "restaurant", "plant", "tree",
})

ROLE_KEYWORDS = frozenset({
    "manager", "employee", "clerk", "cashier", "buyer", "seller", "owner",
    "operator", "administrator", "admin", "agent", "driver", "supplier",
    "vendor", "approver", "reviewer", "author", "participant", "applicant",
    "student", "teacher", "guest", "member", "tenant", "landlord", "patient",
    "doctor", "staff", "assistant", "consultant", "contractor", "sponsor",
    "beneficiary", "payer", "payee", "recipient", "sender", "pilot", "crew",
})

AGENTIVE_PATTERN = re.compile(r"(er|or|ist|ant|ee)s?$")

AGENTIVE_EXCEPTIONS = frozenset({
    "customer", "customers", "order", "orders", "number", "header", "footer",
    "filter", "register", "calendar", "vector", "sensor", "monitor", "error",
    "color", "colour", "factor", "door", "floor", "parameter", "cluster",
    "layer", "buffer", "marker", "timer", "ledger", "voucher", "coffee",
    "fee", "fees", "degree", "committee", "guarantee", "warrant", "variant",
    "constant", "list", "checklist", "playlist", "wishlist",
})


@dataclass(frozen=True)
class ClassificationRule:
    """
    One row of the classification table.

    kind is one of:
    - "exact": lower-cased name is in `values`
    - "suffix": lower-cased name ends with any entry of `values`
    - "pattern": `pattern` matches and the name is not in `exceptions`
    """
    name: str
    archetype: Archetype
    kind: str
    values: frozenset[str] | tuple[str, ...] = field(default_factory=frozenset)
    pattern: Optional[Pattern[str]] = None
    exceptions: frozenset[str] = field(default_factory=frozenset)

    def matches(self, lowered_name: str) -> bool:
        if self.kind == "exact":
            return lowered_name in self.values
        if self.kind == "suffix":
            return lowered_name.endswith(tuple(self.values))
        if self.kind == "pattern":
            return (
                self.pattern is not None
                and lowered_name not in self.exceptions
                and self.pattern.search(lowered_name) is not None
            )
        return False


# Order matters: party/place/thing nouns are checked before the agentive
# suffix rule so "customer" stays ppt.
RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("description-keyword", Archetype.DESC, "exact", DESCRIPTION_KEYWORDS),
    ClassificationRule("description-suffix", Archetype.DESC, "suffix", DESCRIPTION_SUFFIXES),
    ClassificationRule("moment-keyword", Archetype.MOMENT, "exact", MOMENT_KEYWORDS),
    ClassificationRule("ppt-keyword", Archetype.PPT, "exact", PPT_KEYWORDS),
    ClassificationRule("role-keyword", Archetype.ROLE, "exact", ROLE_KEYWORDS),
    ClassificationRule(
        "agentive-suffix", Archetype.ROLE, "pattern",
        pattern=AGENTIVE_PATTERN, exceptions=AGENTIVE_EXCEPTIONS,
    ),
)

DEFAULT_ARCHETYPE = Archetype.PPT


def normalize_archetype_tag(tag: Optional[str]) -> Optional[Archetype]:
    """
    Map a free-text archetype tag from the source project to an archetype.

    Recognizes "party..." prefixes, "role", "moment..." prefixes,
    "description", and the canonical codes themselves. Returns None for
    anything else so heuristics take over.
    """
    if not tag:
        return None
    text = tag.strip().lower()
    if text.startswith("party"):
        return Archetype.PPT
    if text == "role":
        return Archetype.ROLE
    if text.startswith("moment"):
        return Archetype.MOMENT
    if text == "description":
        return Archetype.DESC
    try:
        return Archetype(text)
    except ValueError:
        return None


def classify_name(name: str, tag: Optional[str] = None) -> Archetype:
    """Classify from a class name and optional explicit tag."""
    explicit = normalize_archetype_tag(tag)
    if explicit is not None:
        return explicit
    lowered = (name or "").strip().lower()
    for rule in RULES:
        if rule.matches(lowered):
            return rule.archetype
    return DEFAULT_ARCHETYPE


def matching_rule(name: str) -> Optional[ClassificationRule]:
    """The first heuristic rule that matches a name, or None for the default."""
    lowered = (name or "").strip().lower()
    for rule in RULES:
        if rule.matches(lowered):
            return rule
    return None


def classify(cls: "ModelClass") -> Archetype:
    """Classify a class, honouring its explicit archetype metadata."""
    return classify_name(cls.name, cls.archetype_tag)
