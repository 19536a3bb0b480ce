"""XForm definition parsing.

Turns raw XForm XML into the definition tree the schema engine walks. The
parser reads the primary instance, applies declared types from ``<bind>``
elements, infers types from body controls where a bind declares none, and
marks repeating nodes. It also extracts the root and submission identities
and the form title.

Classes:
- ParsedForm: Definition tree plus identity and title of one form

Functions:
- parse_xform(): Parse raw XML into a ParsedForm
"""

from __future__ import annotations

from dataclasses import dataclass
import posixpath
from xml.etree.ElementTree import Element, ParseError as XMLParseError

from defusedxml import DefusedXmlException
import defusedxml.ElementTree as ET
from fastmcp.utilities.logging import get_logger

from .constants import Constants, FormDataType
from .exceptions import DefinitionErrorReason, FormDefinitionError
from .models import FormIdentity, FormNode
from .utils import persistence_prefix, substitute_slashes

_logger = get_logger("form_schema.xform")

XFORMS_NS = "http://www.w3.org/2002/xforms"

# Declared bind types, without any "xsd:"-style prefix
_BIND_TYPES: dict[str, FormDataType] = {
    "string": FormDataType.TEXT,
    "int": FormDataType.INTEGER,
    "integer": FormDataType.INTEGER,
    "decimal": FormDataType.DECIMAL,
    "date": FormDataType.DATE,
    "time": FormDataType.TIME,
    "dateTime": FormDataType.DATE_TIME,
    "select1": FormDataType.CHOICE,
    "select": FormDataType.CHOICE_LIST,
    "boolean": FormDataType.BOOLEAN,
    "geopoint": FormDataType.GEOPOINT,
    "barcode": FormDataType.BARCODE,
    "binary": FormDataType.BINARY,
}

# Body controls that imply a type when the bind declares none
_CONTROL_TYPES: dict[str, FormDataType] = {
    "select1": FormDataType.CHOICE,
    "select": FormDataType.CHOICE_LIST,
    "upload": FormDataType.BINARY,
}
_TEXT_CONTROLS = frozenset({"input", "textarea", "secret", "trigger", "range", "rank"})


@dataclass
class ParsedForm:
    """A parsed form definition.

    Attributes:
        root_identity: Identity of the definition's root element
        submission_identity: Identity of the submission element, keying the schema
        title: Form title with slashes removed
        root: Instance root node
        submission: Submission node (the root unless a submission ref names another)
        raw_definition: The XML text as submitted
    """

    root_identity: FormIdentity
    submission_identity: FormIdentity
    title: str
    root: FormNode
    submission: FormNode
    raw_definition: str

    @property
    def is_submission_distinct(self) -> bool:
        return self.submission is not self.root

    def table_prefix(self, realm_domains: list[str] | tuple[str, ...] = ()) -> str:
        """Return the table-name prefix derived from the submission form id."""
        return persistence_prefix(self.submission_identity.form_id, realm_domains)


def parse_xform(xml: str | None, form_name: str | None = None) -> ParsedForm:
    """Parse raw XForm XML.

    Args:
        xml: The XForm definition text
        form_name: Title to use when the definition carries none

    Returns:
        ParsedForm for the definition

    Raises:
        FormDefinitionError: If the text is missing, unparseable, or lacks
            a usable id or title
    """
    if xml is None or not xml.strip():
        raise FormDefinitionError("Form definition is empty", DefinitionErrorReason.MISSING_XML)
    try:
        document = ET.fromstring(xml)
    except (XMLParseError, DefusedXmlException) as exc:
        msg = f"Form definition is not parseable XML: {exc}"
        raise FormDefinitionError(msg, DefinitionErrorReason.BAD_PARSE) from exc

    head = _child(document, "head")
    model = _child(head, "model") if head is not None else None
    instance = _child(model, "instance") if model is not None else None
    instance_root = _first_element(instance) if instance is not None else None
    if model is None or instance_root is None:
        raise FormDefinitionError(
            "Form definition has no model instance", DefinitionErrorReason.BAD_PARSE
        )

    paths: dict[str, list[FormNode]] = {}
    root = _build_node(instance_root, "", paths)

    bind_paths: dict[str, str] = {}
    typed: set[str] = set()
    for bind in _children(model, "bind"):
        nodeset = bind.get("nodeset")
        if not nodeset:
            continue
        path = _resolve(f"/{root.name}", nodeset)
        if bind.get("id"):
            bind_paths[bind.get("id", "")] = path
        declared = bind.get("type")
        if declared:
            _set_type(paths, path, _declared_type(declared))
            typed.add(path)

    body = _child(document, "body")
    if body is not None:
        _apply_body(body, f"/{root.name}", paths, bind_paths, typed)

    submission = root
    for element in _children(model, "submission"):
        ref = element.get("ref")
        if ref:
            nodes = paths.get(_resolve(f"/{root.name}", ref))
            if nodes:
                submission = nodes[0]
            break

    root_identity = _root_identity(instance_root, root)
    if submission is root:
        submission_identity = root_identity
    else:
        submission_identity = _identity(submission, None)

    title = _title(head, form_name)
    _logger.debug(
        "Parsed form %s (title %r, submission %s)",
        root_identity.canonical_key(),
        title,
        submission.name,
    )
    return ParsedForm(
        root_identity=root_identity,
        submission_identity=submission_identity,
        title=title,
        root=root,
        submission=submission,
        raw_definition=xml,
    )


# ---- tree construction -----------------------------------------------------
def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _namespace(tag: str) -> str | None:
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


def _children(parent: Element, name: str) -> list[Element]:
    return [child for child in parent if isinstance(child.tag, str) and _local(child.tag) == name]


def _child(parent: Element, name: str) -> Element | None:
    found = _children(parent, name)
    return found[0] if found else None


def _first_element(parent: Element) -> Element | None:
    return next((child for child in parent if isinstance(child.tag, str)), None)


def _build_node(element: Element, parent_path: str, paths: dict[str, list[FormNode]]) -> FormNode:
    name = _local(element.tag)
    path = f"{parent_path}/{name}"
    attributes = {_local(key): value for key, value in element.attrib.items()}
    node = FormNode(name=name, attributes=attributes, repeatable="template" in attributes)
    paths.setdefault(path, []).append(node)
    for child in element:
        if isinstance(child.tag, str):
            node.children.append(_build_node(child, path, paths))
    return node


def _resolve(context: str, ref: str) -> str:
    ref = ref.split("[", 1)[0].strip()
    if not ref.startswith("/"):
        ref = f"{context}/{ref}"
    return posixpath.normpath(ref)


def _declared_type(declared: str) -> FormDataType:
    local = declared.rsplit(":", 1)[-1]
    return _BIND_TYPES.get(local, FormDataType.UNSUPPORTED)


def _set_type(paths: dict[str, list[FormNode]], path: str, data_type: FormDataType) -> None:
    for node in paths.get(path, ()):
        node.data_type = data_type


def _apply_body(
    element: Element,
    context: str,
    paths: dict[str, list[FormNode]],
    bind_paths: dict[str, str],
    typed: set[str],
) -> None:
    """Infer control types and repeats from the body, depth-first."""
    for child in element:
        if not isinstance(child.tag, str):
            continue
        name = _local(child.tag)
        if name in {"group", "repeat"}:
            ref = child.get("nodeset") if name == "repeat" else child.get("ref")
            if ref is None and child.get("bind") in bind_paths:
                ref = bind_paths[child.get("bind", "")]
            inner = _resolve(context, ref) if ref else context
            if name == "repeat" and ref:
                for node in paths.get(inner, ()):
                    node.repeatable = True
            _apply_body(child, inner, paths, bind_paths, typed)
            continue

        if name in _CONTROL_TYPES:
            data_type = _CONTROL_TYPES[name]
        elif name in _TEXT_CONTROLS:
            data_type = FormDataType.TEXT
        else:
            continue
        ref = child.get("ref")
        if ref:
            path = _resolve(context, ref)
        elif child.get("bind") in bind_paths:
            path = bind_paths[child.get("bind", "")]
        else:
            continue
        if path not in typed:
            _set_type(paths, path, data_type)
            typed.add(path)


# ---- identity and title ----------------------------------------------------
def _version(node: FormNode, attribute: str) -> int | None:
    value = node.attribute(attribute)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError as exc:
        msg = f"Attribute {attribute} of {node.name} is not an integer: {value!r}"
        raise FormDefinitionError(msg, DefinitionErrorReason.BAD_PARSE) from exc


def _identity(node: FormNode, fallback_id: str | None) -> FormIdentity:
    form_id = node.attribute(Constants.FORM_ID_ATTRIBUTE_NAME)
    if form_id is None or not form_id.strip():
        if fallback_id is None:
            msg = f"Element {node.name} has no {Constants.FORM_ID_ATTRIBUTE_NAME} attribute"
            raise FormDefinitionError(msg, DefinitionErrorReason.ID_MISSING)
        form_id = fallback_id
    return FormIdentity(
        form_id=substitute_slashes(form_id.strip()),
        model_version=_version(node, Constants.VERSION_ATTRIBUTE_NAME),
        ui_version=_version(node, Constants.UI_VERSION_ATTRIBUTE_NAME),
    )


def _root_identity(element: Element, root: FormNode) -> FormIdentity:
    if root.attribute(Constants.FORM_ID_ATTRIBUTE_NAME):
        return _identity(root, None)
    namespace = _namespace(element.tag)
    if namespace is None or namespace == XFORMS_NS:
        msg = f"Element {root.name} has no id attribute and no namespace to use instead"
        raise FormDefinitionError(msg, DefinitionErrorReason.ID_MISSING)
    colon = namespace.find(":")
    slash = namespace.find("/")
    if colon == -1 or (slash != -1 and slash < colon):
        msg = f"Namespace {namespace!r} of {root.name} is not a usable form id"
        raise FormDefinitionError(msg, DefinitionErrorReason.ID_MALFORMED)
    return _identity(root, namespace)


def _title(head: Element | None, form_name: str | None) -> str:
    title_element = _child(head, "title") if head is not None else None
    title = "".join(title_element.itertext()).strip() if title_element is not None else ""
    if not title and form_name:
        title = form_name.strip()
    title = title.replace(Constants.FORWARD_SLASH, "")
    if not title:
        raise FormDefinitionError(
            "Form definition has no title and no form name was given",
            DefinitionErrorReason.TITLE_MISSING,
        )
    return title
