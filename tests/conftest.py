"""Shared fixtures: the same GTD data written in both file formats."""

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest
import yaml

from gtd_store.formats import Format

ORG_FIXTURE = r"""#+TITLE: GTD

Some notes that are not records.

* Config
:PROPERTIES:
:IS_CONFIG: t
:PROJECT_STATUSES: ACTIVE | COMPLETE CANCELLED
:NEXT_ACTION_STATUSES: NEXT | DONE
:WAITING_FOR_STATUSES: WAITING | RECEIVED
:CONTEXT_TAG_REGEX: @(\S+)
:END:
* Projects
** Build a shed                                                        :home:
:PROPERTIES:
:ID: project-1
:TYPE: project
:STATUS: COMPLETE
:END:
** Buy lumber
:PROPERTIES:
:ID: action-2
:TYPE: next_action
:STATUS: DONE
:SUPERIOR_PROJECTS: project-1
:CONTEXT: @test_context
:END:
** Wait for permit
:PROPERTIES:
:ID: waiting-1
:TYPE: waiting_for
:STATUS: WAITING
:SUPERIOR_PROJECTS: project-1
:END:
* Actions
** Call the plumber
:PROPERTIES:
:ID: action-1
:TYPE: next_action
:STATUS: NEXT
:END:
"""

YAML_FIXTURE = r"""config:
  is_config: true
  context_tag_regex: '@(\S+)'
  statuses:
    project:
      - {display: ACTIVE, is_active: true}
      - {display: COMPLETE, is_active: false}
      - {display: CANCELLED, is_active: false}
    next_action:
      - {display: NEXT, is_active: true}
      - {display: DONE, is_active: false}
    waiting_for:
      - {display: WAITING, is_active: true}
      - {display: RECEIVED, is_active: false}
project-1:
  type: project
  title: Build a shed
  status: COMPLETE
action-2:
  type: next_action
  title: Buy lumber
  status: DONE
  superior_projects: [project-1]
  context: ['@test_context']
waiting-1:
  type: waiting_for
  title: Wait for permit
  status: WAITING
  superior_projects: [project-1]
action-1:
  type: next_action
  title: Call the plumber
  status: NEXT
"""

FIXTURES = {Format.ORG: ORG_FIXTURE, Format.YAML: YAML_FIXTURE}
SUFFIXES = {Format.ORG: ".org", Format.YAML: ".yaml"}


def render_org_record(record: dict[str, Any]) -> str:
    """Render a record as an Org headline with a property drawer."""
    lines = [f"* {record.get('title', record['id'])}", ":PROPERTIES:"]
    for key, value in record.items():
        if key == "title":
            continue
        if isinstance(value, list):
            value = " ".join(value)
        lines.append(f":{key.upper()}: {value}")
    lines.append(":END:")
    return "\n".join(lines) + "\n"


def render_yaml_record(record: dict[str, Any]) -> str:
    """Render a record as a top-level YAML entry keyed by its id."""
    body = {key: value for key, value in record.items() if key != "id"}
    return yaml.safe_dump({record["id"]: body}, sort_keys=False)


RENDERERS = {Format.ORG: render_org_record, Format.YAML: render_yaml_record}

GtdFileFactory = Callable[..., Path]


@pytest.fixture(params=[Format.ORG, Format.YAML], ids=["org", "yaml"])
def fmt(request: pytest.FixtureRequest) -> Format:
    """Run a test once per file format."""
    return request.param


@pytest.fixture
def gtd_file(tmp_path: Path) -> GtdFileFactory:
    """Return a factory writing a GTD file in a given format.

    The file holds the standard fixture (a config record and four items)
    followed by any extra records; ``base=False`` leaves the fixture out.
    """

    def factory(
        fmt: Format,
        extra: Iterable[dict[str, Any]] = (),
        base: bool = True,
        name: str = "gtd",
    ) -> Path:
        path = tmp_path / f"{name}{SUFFIXES[fmt]}"
        text = FIXTURES[fmt] if base else ""
        for record in extra:
            text += RENDERERS[fmt](record)
        path.write_text(text, encoding="utf-8")
        return path

    return factory
