from __future__ import annotations

import pytest

from code_owners.backend.models import (
    NEVER_SUGGEST,
    OwnerConfig,
    OwnerConfigImport,
    OwnerConfigKey,
    OwnerReference,
    OwnerSet,
)
from code_owners.errors import ConfigFormatError, ConfigParseError
from code_owners.parsers import ProtoTextParser

SAMPLE = """\
owners_config {
  ignore_parent_owners: true
  owner_sets {
    path_expressions: "*.md"
    owners {
      email: "a@x"
    }
  }
}
"""


def _key() -> OwnerConfigKey:
    return OwnerConfigKey(project="p", branch="main", folder_path="/docs")


def test_parse_sample() -> None:
    config = ProtoTextParser().parse(_key(), SAMPLE)
    assert config.ignore_parent_owners
    assert len(config.owner_sets) == 1
    assert config.owner_sets[0].path_expressions == ("*.md",)
    assert config.owner_sets[0].emails == ("a@x",)


def test_format_sample_round_trips() -> None:
    parser = ProtoTextParser()
    assert parser.format(parser.parse(_key(), SAMPLE)) == SAMPLE


def test_empty_text_is_empty_config() -> None:
    config = ProtoTextParser().parse(_key(), "  # nothing here\n")
    assert config.owner_sets == ()
    assert not config.ignore_parent_owners


def test_emails_keep_order_and_duplicates_without_validation() -> None:
    text = (
        'owners_config {\n'
        '  owner_sets {\n'
        '    owners { email: "b@x" }\n'
        '    owners { email: "not-an-email" }\n'
        '    owners { email: "b@x" }\n'
        '  }\n'
        '}\n'
    )
    config = ProtoTextParser().parse(_key(), text)
    assert config.owner_sets[0].emails == ("b@x", "not-an-email", "b@x")


def test_sets_without_owners_are_dropped() -> None:
    text = 'owners_config: {\n  ignore_parent_owners: false\n  owner_sets { path_expressions: "*.md" }\n}\n'
    config = ProtoTextParser().parse(_key(), text)
    assert config.owner_sets == ()
    assert not config.ignore_parent_owners


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('owners_config {\n  colour: "blue"\n}\n', "unknown field"),
        ("owners_config {\n  owner_sets {\n", "unterminated block"),
        ("owners_config {\n}\nextra\n", "unexpected"),
        ('owners_config {\n  owner_sets {\n    owners { email: "a@x }\n  }\n}\n', "unterminated string"),
        ("owners_config {\n  owner_sets {\n    owners { }\n  }\n}\n", "without email"),
        ("owners_config {\n  ignore_parent_owners: maybe\n}\n", "true or false"),
    ],
)
def test_structural_defects_fail(text: str, message: str) -> None:
    with pytest.raises(ConfigParseError, match=message):
        ProtoTextParser().parse(_key(), text)


def test_format_rejects_ignore_global_and_parent_owners() -> None:
    config = OwnerConfig(
        key=_key(),
        owner_sets=(
            OwnerSet(
                path_expressions=("*.md",),
                owners=(OwnerReference(email="a@x"),),
                ignore_global_and_parent_owners=True,
            ),
        ),
    )
    with pytest.raises(ConfigFormatError, match="ignoreGlobalAndParentOwners is not supported"):
        ProtoTextParser().format(config)


def test_format_rejects_imports_and_annotations() -> None:
    with_import = OwnerConfig(key=_key(), imports=(OwnerConfigImport(file_path="/OWNERS_METADATA"),))
    with pytest.raises(ConfigFormatError):
        ProtoTextParser().format(with_import)

    annotated = OwnerConfig(
        key=_key(),
        owner_sets=(OwnerSet(owners=(OwnerReference(email="a@x", annotations=(NEVER_SUGGEST,)),)),),
    )
    with pytest.raises(ConfigFormatError):
        ProtoTextParser().format(annotated)


def test_format_escapes_quotes() -> None:
    config = OwnerConfig(key=_key(), owner_sets=(OwnerSet.of('we"ird@x'),))
    text = ProtoTextParser().format(config)
    assert 'email: "we\\"ird@x"' in text
    assert ProtoTextParser().parse(_key(), text).owner_sets[0].emails == ('we"ird@x',)


def test_parse_of_formatted_config_gives_back_the_config() -> None:
    a, b, c = (OwnerReference(email=e) for e in ("a@x", "b@x", "c@x"))
    config = OwnerConfig(
        key=_key(),
        ignore_parent_owners=True,
        owner_sets=(
            OwnerSet(path_expressions=("*.md", "guides/**"), owners=(b, a, b)),
            OwnerSet(owners=(c, c)),
            OwnerSet(path_expressions=("*.txt",), owners=(a,)),
        ),
    )
    parser = ProtoTextParser()
    parsed = parser.parse(_key(), parser.format(config))
    assert parsed == config
    assert [s.emails for s in parsed.owner_sets] == [("b@x", "a@x", "b@x"), ("c@x", "c@x"), ("a@x",)]


def test_control_characters_survive_formatting() -> None:
    emails = ("tab\there@x", "line\nbreak@x", 'quote"d@x', "back\\slash@x", "cr\r@x")
    config = OwnerConfig(
        key=_key(),
        owner_sets=(OwnerSet(owners=tuple(OwnerReference(email=e) for e in emails)),),
    )
    parser = ProtoTextParser()
    text = parser.format(config)
    assert 'email: "tab\\there@x"' in text
    assert 'email: "line\\nbreak@x"' in text
    assert parser.parse(_key(), text).owner_sets[0].emails == emails
