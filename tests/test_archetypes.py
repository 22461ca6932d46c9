"""Tests for archetype classification."""

import pytest

from modelview_core import Archetype, ModelClass, classify, classify_name, normalize_archetype_tag
from modelview_core.archetypes import matching_rule


@pytest.mark.parametrize("name,expected", [
    ("OrderStatus", Archetype.DESC),
    ("ProductType", Archetype.DESC),
    ("Category", Archetype.DESC),
    ("Invoice", Archetype.MOMENT),
    ("OrderLine", Archetype.MOMENT),
    ("Customer", Archetype.PPT),
    ("Computer", Archetype.PPT),
    ("Manager", Archetype.ROLE),
    ("Driver", Archetype.ROLE),
    ("Inspector", Archetype.ROLE),
    ("Widget", Archetype.PPT),
])
def test_classify_by_name(name, expected):
    assert classify_name(name) == expected


@pytest.mark.parametrize("tag,expected", [
    ("moment-interval", Archetype.MOMENT),
    ("Party, Place or Thing", Archetype.PPT),
    ("role", Archetype.ROLE),
    ("Description", Archetype.DESC),
    ("desc", Archetype.DESC),
    ("ppt", Archetype.PPT),
])
def test_normalize_tag(tag, expected):
    assert normalize_archetype_tag(tag) == expected


def test_unknown_tag_is_ignored():
    assert normalize_archetype_tag("something else") is None
    assert normalize_archetype_tag(None) is None
    assert classify_name("Invoice", "something else") == Archetype.MOMENT


def test_explicit_tag_wins_over_name():
    assert classify_name("Customer", "moment-interval") == Archetype.MOMENT
    cls = ModelClass(id="c", name="OrderStatus", archetype_tag="role")
    assert classify(cls) == Archetype.ROLE


@pytest.mark.parametrize("name", ["", "X", "   ", "Ünïcode", "123", "customers"])
def test_classification_is_total(name):
    assert classify_name(name) in set(Archetype)


def test_matching_rule_names_the_rule():
    assert matching_rule("OrderStatus").name == "description-suffix"
    assert matching_rule("Invoice").name == "moment-keyword"
    assert matching_rule("Widget") is None
