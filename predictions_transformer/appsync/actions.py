"""
Action template catalog.

Maps each predictions action to its request/response mapping templates, the
IAM actions it needs, the data source it calls and the input fields it reads.
The catalog is a read-only table handed to the synthesizers; nothing here
branches on the action name at synthesis time.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple

from ..errors import UnsupportedActionError
from ..mapping_template import (
    Node,
    compound,
    for_each,
    iff,
    if_else,
    int_,
    obj,
    print_template,
    qref,
    raw,
    ref,
    set_,
    str_,
    to_json,
)
from ..settings import TransformerSettings
from .datasources import LAMBDA, REKOGNITION, TRANSLATE, DataSourceConfig

# Reference to the result of the previous pipeline function
PREVIOUS_RESULT = "$ctx.prev.result"
HTTP_VERSION = "2018-05-29"
JSON_CONTENT_TYPE = "application/x-amz-json-1.1"


@dataclass(frozen=True)
class PermissionStatement:
    """One IAM policy statement."""

    actions: Tuple[str, ...]
    resource: Any = "*"
    effect: str = "Allow"

    def to_dict(self) -> Dict[str, Any]:
        return {"Action": list(self.actions), "Effect": self.effect, "Resource": self.resource}


@dataclass(frozen=True)
class InputField:
    """
    Argument an action reads from ``$ctx.args.input.<action>``.

    Fields marked ``from_previous`` fall back to the previous function's
    result, so they are only required when the action runs first.
    """

    name: str
    type_name: str = "String"
    from_previous: bool = False


@dataclass(frozen=True)
class ActionTemplateEntry:
    name: str
    request: Node
    response: Node
    permissions: Tuple[str, ...]
    data_source: DataSourceConfig
    input_fields: Tuple[InputField, ...] = ()
    next_actions: Tuple[str, ...] = ()
    consumes_previous: bool = False
    sets_list_flag: Optional[bool] = None
    reads_storage: bool = False

    @property
    def needs_shared_state(self) -> bool:
        """Whether the function reads or writes the resolver-level stash."""
        return self.reads_storage or self.sets_list_flag is not None


@dataclass(frozen=True)
class ActionDescriptor:
    """Printed templates and permissions for one action. Built by the catalog only."""

    name: str
    request_template: str
    response_template: str
    required_permissions: FrozenSet[PermissionStatement] = field(default_factory=frozenset)


class ActionTemplateCatalog:
    """Read-only lookup table from action name to template entry."""

    def __init__(self, entries: Mapping[str, ActionTemplateEntry]):
        self._entries = MappingProxyType(dict(entries))

    def __contains__(self, action: object) -> bool:
        return action in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(
        self, action: str, type_name: Optional[str] = None, field_name: Optional[str] = None
    ) -> ActionTemplateEntry:
        """
        Get the template entry for an action.

        Raises:
            UnsupportedActionError: If the action is not in the catalog
        """
        entry = self._entries.get(action)
        if entry is None:
            raise UnsupportedActionError(action, type_name, field_name)
        return entry

    def describe(
        self, action: str, type_name: Optional[str] = None, field_name: Optional[str] = None
    ) -> ActionDescriptor:
        entry = self.lookup(action, type_name, field_name)
        permissions = frozenset([PermissionStatement(entry.permissions)]) if entry.permissions else frozenset()
        return ActionDescriptor(
            name=entry.name,
            request_template=print_template(entry.request),
            response_template=print_template(entry.response),
            required_permissions=permissions,
        )

    def can_follow(self, previous: str, action: str) -> bool:
        """Whether ``action`` may consume the result of ``previous``."""
        previous_entry = self._entries.get(previous)
        entry = self._entries.get(action)
        if previous_entry is None or entry is None:
            return False
        return entry.consumes_previous and action in previous_entry.next_actions


def _http_request(body: Node, target: str) -> Node:
    return obj(
        {
            "version": str_(HTTP_VERSION),
            "method": str_("POST"),
            "resourcePath": str_("/"),
            "params": obj(
                {
                    "body": body,
                    "headers": obj(
                        {
                            "Content-Type": str_(JSON_CONTENT_TYPE),
                            "X-Amz-Target": str_(target),
                        }
                    ),
                }
            ),
        }
    )


def _s3_image(action: str) -> Node:
    return obj(
        {
            "S3Object": obj(
                {
                    "Bucket": str_("$bucketName"),
                    "Name": str_(f"$ctx.args.input.{action}.key"),
                }
            )
        }
    )


def _error_first(success: Node) -> Node:
    return compound(
        iff(ref("ctx.error"), ref("util.error($ctx.error.message, $ctx.error.type)")),
        if_else(raw("$ctx.result.statusCode == 200"), success, ref("util.error($ctx.result.body)")),
    )


def _identify_text() -> ActionTemplateEntry:
    request = compound(
        set_(ref("bucketName"), ref('ctx.stash.get("s3Bucket")')),
        _http_request(obj({"Image": _s3_image("identifyText")}), "RekognitionService.DetectText"),
    )
    response = _error_first(
        compound(
            set_(ref("results"), ref("util.parseJson($ctx.result.body)")),
            set_(ref("finalResult"), str_("")),
            for_each(
                ref("item"),
                ref("results.TextDetections"),
                [iff(raw('$item.Type == "LINE"'), set_(ref("finalResult"), str_("$finalResult$item.DetectedText ")))],
            ),
            ref("util.toJson($finalResult.trim())"),
        )
    )
    return ActionTemplateEntry(
        name="identifyText",
        request=request,
        response=response,
        permissions=("rekognition:DetectText",),
        data_source=REKOGNITION,
        input_fields=(InputField("key", "String"),),
        next_actions=("translateText", "convertTextToSpeech"),
        reads_storage=True,
    )


def _identify_labels(settings: TransformerSettings) -> ActionTemplateEntry:
    body = obj(
        {
            "Image": _s3_image("identifyLabels"),
            "MaxLabels": int_(settings.max_labels),
            "MinConfidence": int_(settings.min_confidence),
        }
    )
    request = compound(
        set_(ref("bucketName"), ref('ctx.stash.get("s3Bucket")')),
        qref('$ctx.stash.put("isList", true)'),
        _http_request(body, "RekognitionService.DetectLabels"),
    )
    response = _error_first(
        compound(
            set_(ref("labels"), str_("")),
            set_(ref("result"), ref("util.parseJson($ctx.result.body)")),
            for_each(ref("label"), ref("result.Labels"), [set_(ref("labels"), str_("$labels$label.Name, "))]),
            to_json(ref('labels.replaceAll(", $", "")')),
        )
    )
    return ActionTemplateEntry(
        name="identifyLabels",
        request=request,
        response=response,
        permissions=("rekognition:DetectLabels",),
        data_source=REKOGNITION,
        input_fields=(InputField("key", "String"),),
        next_actions=("translateText",),
        sets_list_flag=True,
        reads_storage=True,
    )


def _translate_text() -> ActionTemplateEntry:
    body = obj(
        {
            "SourceLanguageCode": str_("$ctx.args.input.translateText.sourceLanguage"),
            "TargetLanguageCode": str_("$ctx.args.input.translateText.targetLanguage"),
            "Text": str_("$text"),
        }
    )
    request = compound(
        set_(ref("text"), ref(f"util.defaultIfNull($ctx.args.input.translateText.text, {PREVIOUS_RESULT})")),
        _http_request(body, "AWSShineFrontendService_20170701.TranslateText"),
    )
    response = _error_first(
        compound(
            set_(ref("result"), ref("util.parseJson($ctx.result.body)")),
            ref("util.toJson($result.TranslatedText)"),
        )
    )
    return ActionTemplateEntry(
        name="translateText",
        request=request,
        response=response,
        permissions=("translate:TranslateText",),
        data_source=TRANSLATE,
        input_fields=(
            InputField("sourceLanguage", "String"),
            InputField("targetLanguage", "String"),
            InputField("text", "String", from_previous=True),
        ),
        next_actions=("convertTextToSpeech",),
        consumes_previous=True,
    )


def _convert_text_to_speech() -> ActionTemplateEntry:
    payload = obj(
        {
            "uuid": str_("$util.autoId()"),
            "action": str_("convertTextToSpeech"),
            "bucket": str_("$bucketName"),
            "voiceID": str_("$ctx.args.input.convertTextToSpeech.voiceID"),
            "text": str_("$text"),
        }
    )
    request = compound(
        set_(ref("bucketName"), ref('ctx.stash.get("s3Bucket")')),
        qref('$ctx.stash.put("isList", false)'),
        set_(ref("text"), ref(f"util.defaultIfNull($ctx.args.input.convertTextToSpeech.text, {PREVIOUS_RESULT})")),
        obj({"version": str_(HTTP_VERSION), "operation": str_("Invoke"), "payload": to_json(payload)}),
    )
    # Lambda results have no HTTP status; the function returns the signed URL directly
    response = compound(
        iff(ref("ctx.error"), ref("util.error($ctx.error.message, $ctx.error.type)")),
        ref("util.toJson($ctx.result.url)"),
    )
    return ActionTemplateEntry(
        name="convertTextToSpeech",
        request=request,
        response=response,
        permissions=("polly:SynthesizeSpeech",),
        data_source=LAMBDA,
        input_fields=(
            InputField("voiceID", "String"),
            InputField("text", "String", from_previous=True),
        ),
        consumes_previous=True,
        sets_list_flag=False,
        reads_storage=True,
    )


def default_catalog(settings: Optional[TransformerSettings] = None) -> ActionTemplateCatalog:
    """Build the catalog of supported predictions actions."""
    if settings is None:
        settings = TransformerSettings()
    entries = [
        _identify_text(),
        _identify_labels(settings),
        _translate_text(),
        _convert_text_to_speech(),
    ]
    return ActionTemplateCatalog({entry.name: entry for entry in entries})
