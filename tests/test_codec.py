"""Tests for the field codec."""

import pytest

from gtd_store.codec import (
    ContextSet,
    ProjectIds,
    StatusList,
    config_from_record,
    entity_from_record,
    entity_to_record,
    is_config_record,
    parse_from_raw,
    parse_from_raw_for,
    write_to_raw,
)
from gtd_store.errors import InvalidValueError, MissingFieldError, UnknownStatusError, UnsupportedGtdTypeError
from gtd_store.formats import Format
from gtd_store.models import Configuration, Context, NextAction, Project, Status, WaitingFor

ACTIVE = Status("ACTIVE", True)
COMPLETE = Status("COMPLETE", False)
CANCELLED = Status("CANCELLED", False)
NEXT = Status("NEXT", True)
DONE = Status("DONE", False)
WAITING = Status("WAITING", True)

CONFIG = Configuration(
    statuses={
        "project": (ACTIVE, COMPLETE, CANCELLED),
        "next_action": (NEXT, DONE),
        "waiting_for": (WAITING,),
    },
    context_tag_regex=r"@(\S+)",
)


def test_context_with_capture_group() -> None:
    """Test the context name is the first group when the regex has one."""
    config = Configuration(context_tag_regex="@(.*)")
    assert parse_from_raw(Format.ORG, Context, config, "@test") == Context("test")


def test_context_without_capture_group() -> None:
    """Test the context name is the whole match when the regex has no group."""
    config = Configuration(context_tag_regex="@.*")
    assert parse_from_raw(Format.YAML, Context, config, "@test") == Context("@test")


def test_context_not_matching() -> None:
    """Test a single context value must match the regex."""
    with pytest.raises(InvalidValueError):
        parse_from_raw(Format.ORG, Context, CONFIG, "errand")


def test_context_list() -> None:
    """Test the regex is applied to every tag in a tag list."""
    expected = frozenset({Context("home"), Context("phone")})
    assert parse_from_raw(Format.ORG, ContextSet, CONFIG, "@home errand @phone") == expected
    assert parse_from_raw(Format.YAML, ContextSet, CONFIG, ["@home", "errand", "@phone"]) == expected
    assert parse_from_raw(Format.ORG, ContextSet, CONFIG, "") == frozenset()


def test_project_ids() -> None:
    """Test superior project ids keep their order."""
    assert parse_from_raw(Format.ORG, ProjectIds, CONFIG, "p2 p1") == ("p2", "p1")
    assert parse_from_raw(Format.YAML, ProjectIds, CONFIG, ["p2", "p1"]) == ("p2", "p1")


def test_status_for_owner_type() -> None:
    """Test statuses are looked up in the owning type's list."""
    assert parse_from_raw_for(Format.ORG, Project, Status, CONFIG, "COMPLETE") == COMPLETE
    assert parse_from_raw_for(Format.YAML, NextAction, Status, CONFIG, "NEXT") == NEXT


def test_unknown_status() -> None:
    """Test a status missing from the owner's list is rejected."""
    with pytest.raises(UnknownStatusError) as excinfo:
        parse_from_raw_for(Format.ORG, Project, Status, CONFIG, "NOTVALID")
    assert excinfo.value.args == (Project, "NOTVALID")


def test_status_validity_is_scoped_per_type() -> None:
    """Test a status valid for next actions is rejected for waiting-for items."""
    assert parse_from_raw_for(Format.ORG, NextAction, Status, CONFIG, "NEXT") == NEXT
    with pytest.raises(UnknownStatusError) as excinfo:
        parse_from_raw_for(Format.ORG, WaitingFor, Status, CONFIG, "NEXT")
    assert excinfo.value.owner_type is WaitingFor
    assert excinfo.value.status == "NEXT"


def test_status_for_unconfigured_type() -> None:
    """Test no status is valid for a type missing from the configuration."""
    config = Configuration(statuses={"project": (ACTIVE,)})
    with pytest.raises(UnknownStatusError):
        parse_from_raw_for(Format.YAML, WaitingFor, Status, config, "ACTIVE")


def test_owner_aware_parse_falls_through() -> None:
    """Test non-status targets parse the same with or without an owner."""
    assert parse_from_raw_for(Format.ORG, NextAction, ProjectIds, CONFIG, "p1") == ("p1",)


def test_org_booleans() -> None:
    """Test Org booleans are t and nil."""
    assert parse_from_raw(Format.ORG, bool, None, "t") is True
    assert parse_from_raw(Format.ORG, bool, None, "nil") is False
    assert write_to_raw(Format.ORG, bool, None, True) == "t"
    with pytest.raises(InvalidValueError):
        parse_from_raw(Format.ORG, bool, None, "maybe")


def test_yaml_booleans_are_native() -> None:
    """Test YAML booleans must be real booleans."""
    assert parse_from_raw(Format.YAML, bool, None, True) is True
    assert write_to_raw(Format.YAML, bool, None, False) is False
    with pytest.raises(InvalidValueError):
        parse_from_raw(Format.YAML, bool, None, "t")


def test_org_status_list() -> None:
    """Test Org status lists put inactive keywords after the bar."""
    statuses = parse_from_raw(Format.ORG, StatusList, None, "ACTIVE | COMPLETE CANCELLED")
    assert statuses == (ACTIVE, COMPLETE, CANCELLED)
    assert write_to_raw(Format.ORG, StatusList, None, statuses) == "ACTIVE | COMPLETE CANCELLED"
    assert parse_from_raw(Format.ORG, StatusList, None, "TODO NEXT") == (Status("TODO", True), NEXT)
    with pytest.raises(InvalidValueError):
        parse_from_raw(Format.ORG, StatusList, None, "A | B | C")


def test_org_status_list_order() -> None:
    """Test Org status lists cannot hold an active status after an inactive one."""
    with pytest.raises(InvalidValueError):
        write_to_raw(Format.ORG, StatusList, None, (DONE, NEXT))


def test_yaml_status_list() -> None:
    """Test YAML status lists are mappings, with bare names meaning active."""
    raw = [{"display": "WAITING", "is_active": True}, {"display": "RECEIVED", "is_active": False}, "SOMEDAY"]
    statuses = parse_from_raw(Format.YAML, StatusList, None, raw)
    assert statuses == (WAITING, Status("RECEIVED", False), Status("SOMEDAY", True))
    assert write_to_raw(Format.YAML, StatusList, None, statuses[:2]) == raw[:2]


def test_write_context() -> None:
    """Test contexts are written back as tags the regex reads again."""
    assert write_to_raw(Format.ORG, Context, CONFIG, Context("test")) == "@test"
    assert write_to_raw(Format.YAML, Context, Configuration(context_tag_regex="@.*"), Context("@test")) == "@test"
    anchored = Configuration(context_tag_regex=r"^ctx:(\w+)$")
    assert write_to_raw(Format.ORG, Context, anchored, Context("home")) == "ctx:home"


def test_write_context_that_cannot_round_trip() -> None:
    """Test a context the regex would not read back is refused."""
    config = Configuration(context_tag_regex="@([a-z]+)")
    with pytest.raises(InvalidValueError):
        write_to_raw(Format.ORG, Context, config, Context("Home"))


def test_write_empty_collections() -> None:
    """Test empty collections are written as None so the field is removed."""
    assert write_to_raw(Format.ORG, ProjectIds, CONFIG, ()) is None
    assert write_to_raw(Format.YAML, ContextSet, CONFIG, frozenset()) is None


def test_write_contexts_sorted() -> None:
    """Test tag lists are written in name order."""
    contexts = frozenset({Context("phone"), Context("home")})
    assert write_to_raw(Format.ORG, ContextSet, CONFIG, contexts) == "@home @phone"
    assert write_to_raw(Format.YAML, ContextSet, CONFIG, contexts) == ["@home", "@phone"]


def test_org_lists_reject_whitespace() -> None:
    """Test ids containing spaces cannot be written to Org lists."""
    with pytest.raises(InvalidValueError):
        write_to_raw(Format.ORG, ProjectIds, CONFIG, ("my project",))


def test_unknown_target_type() -> None:
    """Test asking for a conversion that does not exist."""
    with pytest.raises(TypeError):
        parse_from_raw(Format.ORG, int, CONFIG, "1")
    with pytest.raises(TypeError):
        write_to_raw(Format.YAML, float, CONFIG, 1.0)


def test_org_config_record() -> None:
    """Test reading an Org config record."""
    record = {
        "title": "Config",
        "is_config": "t",
        "project_statuses": "ACTIVE | COMPLETE CANCELLED",
        "next_action_statuses": "NEXT | DONE",
        "context_tag_regex": "@(.*)",
    }
    assert is_config_record(Format.ORG, record)
    config = config_from_record(Format.ORG, record)
    assert config.statuses == {"project": (ACTIVE, COMPLETE, CANCELLED), "next_action": (NEXT, DONE)}
    assert config.context_tag_regex == "@(.*)"


def test_yaml_config_record() -> None:
    """Test reading a YAML config record, with the default context regex."""
    record = {"id": "config", "is_config": True, "statuses": {"waiting_for": ["WAITING"]}}
    assert is_config_record(Format.YAML, record)
    config = config_from_record(Format.YAML, record)
    assert config.statuses == {"waiting_for": (WAITING,)}
    assert config.context_tag_regex == r"@(\S+)"


def test_config_record_with_bad_regex() -> None:
    """Test an invalid context regex is reported."""
    with pytest.raises(InvalidValueError):
        config_from_record(Format.YAML, {"is_config": True, "context_tag_regex": "@("})


def test_items_are_not_config_records() -> None:
    """Test records without the config marker, or with it unset, are items."""
    assert not is_config_record(Format.ORG, {"id": "a", "type": "project"})
    assert not is_config_record(Format.ORG, {"id": "a", "is_config": "nil"})


def test_entity_from_org_record() -> None:
    """Test building an item from an Org record."""
    record = {
        "title": "Buy lumber",
        "id": "action-2",
        "type": "next_action",
        "status": "DONE",
        "superior_projects": "project-1",
        "context": "@test_context",
    }
    entity = entity_from_record(Format.ORG, record, CONFIG)
    assert entity == NextAction(
        id="action-2",
        title="Buy lumber",
        status=DONE,
        superior_projects=("project-1",),
        context={Context("test_context")},
    )


def test_entity_from_record_errors() -> None:
    """Test unsupported types and missing fields are reported."""
    with pytest.raises(UnsupportedGtdTypeError) as excinfo:
        entity_from_record(Format.YAML, {"id": "x", "type": "something_unsupported"}, CONFIG)
    assert excinfo.value.type_tag == "something_unsupported"

    with pytest.raises(MissingFieldError) as missing:
        entity_from_record(Format.YAML, {"id": "x", "type": "project", "status": "ACTIVE"}, CONFIG)
    assert missing.value.field_name == "title"


@pytest.mark.parametrize("fmt", [Format.ORG, Format.YAML])
def test_entity_record_is_inverse(fmt: Format) -> None:
    """Test encoding an item and decoding it again gives the same item."""
    entity = WaitingFor(
        id="waiting-1",
        title="Wait for permit",
        status=WAITING,
        superior_projects=("project-1", "project-2"),
        context={Context("town_hall"), Context("phone")},
    )
    record = entity_to_record(fmt, entity, CONFIG)
    assert record["type"] == "waiting_for"
    assert entity_from_record(fmt, record, CONFIG) == entity


def test_entity_to_record_omits_empty_fields() -> None:
    """Test empty optional fields are encoded as None."""
    record = entity_to_record(Format.YAML, NextAction(id="a", title="Call", status=NEXT), CONFIG)
    assert record == {
        "type": "next_action",
        "id": "a",
        "title": "Call",
        "status": "NEXT",
        "superior_projects": None,
        "context": None,
    }
