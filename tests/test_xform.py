from __future__ import annotations

import pytest

from formschema_mcp.schema_tools.constants import FormDataType
from formschema_mcp.schema_tools.exceptions import DefinitionErrorReason, FormDefinitionError
from formschema_mcp.schema_tools.models import FormNode
from formschema_mcp.schema_tools.xform import parse_xform

NAMESPACES = (
    'xmlns="http://www.w3.org/2002/xforms" '
    'xmlns:h="http://www.w3.org/1999/xhtml" '
    'xmlns:jr="http://openrosa.org/javarosa"'
)

HOUSEHOLD = f"""<h:html {NAMESPACES}>
  <h:head>
    <h:title>Household / survey</h:title>
    <model>
      <instance>
        <data id="org/household" version="3" uiVersion="7">
          <name/>
          <age/>
          <consent/>
          <colors/>
          <photo/>
          <note/>
          <members jr:template="">
            <member_name/>
          </members>
          <visits>
            <visit_date/>
          </visits>
        </data>
      </instance>
      <bind nodeset="/data/name" type="string"/>
      <bind nodeset="/data/age" type="xsd:int"/>
      <bind nodeset="/data/members/member_name" type="string"/>
      <bind nodeset="/data/visits/visit_date" type="date"/>
      <bind nodeset="/data/note" type="geotrace"/>
    </model>
  </h:head>
  <h:body>
    <input ref="/data/name"><label>Name</label></input>
    <select1 ref="/data/consent"><label>Consent</label></select1>
    <select ref="/data/colors"><label>Colors</label></select>
    <upload ref="/data/photo" mediatype="image/*"><label>Photo</label></upload>
    <group ref="/data/members">
      <repeat nodeset="/data/members">
        <input ref="member_name"/>
      </repeat>
    </group>
    <group ref="/data/visits">
      <repeat nodeset="/data/visits">
        <input ref="visit_date"/>
      </repeat>
    </group>
  </h:body>
</h:html>"""


def _form(instance: str, *, title: str = "<h:title>T</h:title>", model_extra: str = "") -> str:
    return (
        f"<h:html {NAMESPACES}><h:head>{title}<model>"
        f"<instance>{instance}</instance>{model_extra}</model></h:head><h:body/></h:html>"
    )


def _child(node: FormNode, name: str) -> FormNode:
    return next(c for c in node.children if c.name == name)


def test_identity_title_and_tree() -> None:
    form = parse_xform(HOUSEHOLD)

    assert form.root_identity.form_id == "org&#47;household"
    assert form.root_identity.model_version == 3
    assert form.root_identity.ui_version == 7
    assert form.submission_identity == form.root_identity
    assert not form.is_submission_distinct
    assert form.title == "Household  survey"
    assert form.raw_definition == HOUSEHOLD
    assert [c.name for c in form.root.children] == [
        "name",
        "age",
        "consent",
        "colors",
        "photo",
        "note",
        "members",
        "visits",
    ]


def test_bind_and_control_types() -> None:
    root = parse_xform(HOUSEHOLD).root

    assert _child(root, "name").data_type is FormDataType.TEXT
    assert _child(root, "age").data_type is FormDataType.INTEGER
    assert _child(root, "consent").data_type is FormDataType.CHOICE
    assert _child(root, "colors").data_type is FormDataType.CHOICE_LIST
    assert _child(root, "photo").data_type is FormDataType.BINARY
    assert _child(root, "note").data_type is FormDataType.UNSUPPORTED


def test_repeats_from_template_and_body() -> None:
    root = parse_xform(HOUSEHOLD).root
    members = _child(root, "members")
    visits = _child(root, "visits")

    assert members.repeatable
    assert visits.repeatable
    assert _child(members, "member_name").data_type is FormDataType.TEXT
    assert _child(visits, "visit_date").data_type is FormDataType.DATE


def test_table_prefix_from_submission_form_id() -> None:
    form = parse_xform(HOUSEHOLD)
    assert form.table_prefix() == "org_household"
    assert form.table_prefix(["org"]) == "household"


def test_namespace_is_used_when_id_is_missing() -> None:
    form = parse_xform(_form('<data xmlns="urn:example:households"><q/></data>'))
    assert form.root_identity.form_id == "urn:example:households"
    assert form.table_prefix() == "example_households"


@pytest.mark.parametrize(
    "xml,reason",
    [
        ("", DefinitionErrorReason.MISSING_XML),
        ("   ", DefinitionErrorReason.MISSING_XML),
        ("<h:html", DefinitionErrorReason.BAD_PARSE),
        (f"<h:html {NAMESPACES}><h:head/></h:html>", DefinitionErrorReason.BAD_PARSE),
        (_form("<data><q/></data>"), DefinitionErrorReason.ID_MISSING),
        (_form('<data xmlns="households/v1:x"><q/></data>'), DefinitionErrorReason.ID_MALFORMED),
        (_form('<data id="f" version="two"><q/></data>'), DefinitionErrorReason.BAD_PARSE),
        (_form('<data id="f"><q/></data>', title=""), DefinitionErrorReason.TITLE_MISSING),
    ],
)
def test_unusable_definitions(xml: str, reason: DefinitionErrorReason) -> None:
    with pytest.raises(FormDefinitionError) as excinfo:
        parse_xform(xml)
    assert excinfo.value.reason is reason


def test_form_name_stands_in_for_missing_title() -> None:
    form = parse_xform(_form('<data id="f"><q/></data>', title=""), form_name="Fallback/Name")
    assert form.title == "FallbackName"


def test_submission_element_keys_the_schema() -> None:
    xml = _form(
        '<data id="outer" version="1"><sub id="inner" version="2"><q/></sub></data>',
        model_extra='<submission ref="/data/sub" method="post"/>',
    )

    form = parse_xform(xml)

    assert form.is_submission_distinct
    assert form.submission.name == "sub"
    assert form.root_identity.form_id == "outer"
    assert (form.submission_identity.form_id, form.submission_identity.model_version) == (
        "inner",
        2,
    )


def test_submission_element_requires_its_own_id() -> None:
    xml = _form(
        '<data id="outer"><sub><q/></sub></data>',
        model_extra='<submission ref="/data/sub"/>',
    )
    with pytest.raises(FormDefinitionError) as excinfo:
        parse_xform(xml)
    assert excinfo.value.reason is DefinitionErrorReason.ID_MISSING


def test_entity_expansion_is_refused() -> None:
    xml = (
        '<!DOCTYPE h:html [<!ENTITY boom "boom">]>'
        f'<h:html {NAMESPACES}><h:head><h:title>&boom;</h:title></h:head></h:html>'
    )
    with pytest.raises(FormDefinitionError) as excinfo:
        parse_xform(xml)
    assert excinfo.value.reason is DefinitionErrorReason.BAD_PARSE
