"""
Protobuf schema for the presentation container.

Only the part of the ProPresenter 7 ``rv.data`` schema that the chord
engine reads or writes is declared here; every other field is kept by
protobuf as an unknown field and written back unchanged on save.

The descriptor is built at import time into a private descriptor pool,
so no generated ``_pb2`` modules are needed.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "rv.data"

_Field = descriptor_pb2.FieldDescriptorProto

STRING = _Field.TYPE_STRING
BYTES = _Field.TYPE_BYTES
BOOL = _Field.TYPE_BOOL
UINT32 = _Field.TYPE_UINT32
MESSAGE = _Field.TYPE_MESSAGE
ENUM = _Field.TYPE_ENUM


# Action.ActionType values
ACTION_TYPE_UNKNOWN = 0
ACTION_TYPE_STAGE_LAYOUT = 1
ACTION_TYPE_MEDIA = 2
ACTION_TYPE_TIMER = 3
ACTION_TYPE_COMMUNICATION = 4
ACTION_TYPE_CLEAR = 5
ACTION_TYPE_PROP = 6
ACTION_TYPE_MASK = 7
ACTION_TYPE_MESSAGE = 8
ACTION_TYPE_SOCIAL_MEDIA = 9
ACTION_TYPE_MULTISCREEN = 10
ACTION_TYPE_PRESENTATION_SLIDE = 11
ACTION_TYPE_FOREGROUND_MEDIA = 12
ACTION_TYPE_BACKGROUND_MEDIA = 13
ACTION_TYPE_PRESENTATION_DOCUMENT = 14
ACTION_TYPE_PROP_SLIDE = 15
ACTION_TYPE_EXTERNAL_PRESENTATION = 17
ACTION_TYPE_AUDIENCE_LOOK = 18
ACTION_TYPE_MACRO = 23
ACTION_TYPE_CLEAR_GROUP = 24

_ACTION_TYPES = {
    name: value for name, value in globals().items() if name.startswith("ACTION_TYPE_")
}

# Slide.Element.Info bit flags
INFO_NONE = 0
INFO_IS_TEXT_ELEMENT = 1
INFO_IS_TEXT_TICKER = 2


def _field(
    name: str,
    number: int,
    field_type: int,
    type_name: Optional[str] = None,
    repeated: bool = False,
) -> descriptor_pb2.FieldDescriptorProto:
    field = _Field(
        name=name,
        number=number,
        type=field_type,
        label=_Field.LABEL_REPEATED if repeated else _Field.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = type_name if type_name.startswith(".") else f".{PACKAGE}.{type_name}"
    return field


def _message(
    name: str,
    fields: Iterable[descriptor_pb2.FieldDescriptorProto],
    nested: Iterable[descriptor_pb2.DescriptorProto] = (),
    enums: Iterable[descriptor_pb2.EnumDescriptorProto] = (),
) -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name=name)
    message.field.extend(fields)
    message.nested_type.extend(nested)
    message.enum_type.extend(enums)
    return message


def _enum(name: str, values: Dict[str, int]) -> descriptor_pb2.EnumDescriptorProto:
    enum = descriptor_pb2.EnumDescriptorProto(name=name)
    for value_name, number in sorted(values.items(), key=lambda item: item[1]):
        enum.value.add(name=value_name, number=number)
    return enum


def build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    """Build the FileDescriptorProto describing the presentation graph."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="pro7chords/presentation.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    file_proto.message_type.extend([
        _message("UUID", [_field("string", 1, STRING)]),
        _message("Group", [
            _field("uuid", 1, MESSAGE, "UUID"),
            _field("name", 2, STRING),
        ]),
        _message("Graphics", [], nested=[
            _message("Text", [
                _field("rtf_data", 5, BYTES),
            ]),
            _message("Element", [
                _field("uuid", 1, MESSAGE, "UUID"),
                _field("name", 2, STRING),
                _field("text", 13, MESSAGE, "Graphics.Text"),
            ]),
        ]),
        _message("Slide", [
            _field("elements", 1, MESSAGE, "Slide.Element", repeated=True),
            _field("uuid", 7, MESSAGE, "UUID"),
        ], nested=[
            _message("Element", [
                _field("element", 1, MESSAGE, "Graphics.Element"),
                _field("info", 4, UINT32),
            ], enums=[
                _enum("Info", {
                    "INFO_NONE": INFO_NONE,
                    "INFO_IS_TEXT_ELEMENT": INFO_IS_TEXT_ELEMENT,
                    "INFO_IS_TEXT_TICKER": INFO_IS_TEXT_TICKER,
                }),
            ]),
        ]),
        _message("PresentationSlide", [
            _field("base_slide", 1, MESSAGE, "Slide"),
        ]),
        _message("Action", [
            _field("uuid", 1, MESSAGE, "UUID"),
            _field("name", 2, STRING),
            _field("isEnabled", 6, BOOL),
            _field("type", 9, ENUM, "Action.ActionType"),
            _field("slide", 23, MESSAGE, "Action.SlideType"),
        ], nested=[
            _message("SlideType", [
                _field("presentation", 2, MESSAGE, "PresentationSlide"),
            ]),
        ], enums=[
            _enum("ActionType", _ACTION_TYPES),
        ]),
        _message("Cue", [
            _field("uuid", 1, MESSAGE, "UUID"),
            _field("name", 2, STRING),
            _field("actions", 10, MESSAGE, "Action", repeated=True),
            _field("isEnabled", 12, BOOL),
        ]),
        _message("Presentation", [
            _field("uuid", 2, MESSAGE, "UUID"),
            _field("name", 3, STRING),
            _field("arrangements", 11, MESSAGE, "Presentation.Arrangement", repeated=True),
            _field("cue_groups", 12, MESSAGE, "Presentation.CueGroup", repeated=True),
            _field("cues", 13, MESSAGE, "Cue", repeated=True),
        ], nested=[
            _message("Arrangement", [
                _field("uuid", 1, MESSAGE, "UUID"),
                _field("name", 2, STRING),
                _field("group_identifiers", 3, MESSAGE, "UUID", repeated=True),
            ]),
            _message("CueGroup", [
                _field("group", 1, MESSAGE, "Group"),
                _field("cue_identifiers", 2, MESSAGE, "UUID", repeated=True),
            ]),
        ]),
    ])
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(build_file_descriptor().SerializeToString())


def message_class(name: str):
    """Get the message class for a type name relative to the package."""
    descriptor = _pool.FindMessageTypeByName(f"{PACKAGE}.{name}")
    return message_factory.GetMessageClass(descriptor)


UUID = message_class("UUID")
Group = message_class("Group")
GraphicsText = message_class("Graphics.Text")
GraphicsElement = message_class("Graphics.Element")
Slide = message_class("Slide")
SlideElement = message_class("Slide.Element")
PresentationSlide = message_class("PresentationSlide")
Action = message_class("Action")
Cue = message_class("Cue")
Presentation = message_class("Presentation")
Arrangement = message_class("Presentation.Arrangement")
CueGroup = message_class("Presentation.CueGroup")
