from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator
from typing import Any, Literal, Optional, Union


UserRole = Literal["client", "designer"]
USER_ROLES: tuple[str, ...] = ("client", "designer")

# Message kinds, appended to "<namespace>-" on the wire
WIDGET_READY = "widget-ready"
CONFIG_UPDATE = "config-update"
ROLE_SELECTED = "role-selected"
PASSPORT_READY = "passport-ready"


class ProjectContext(BaseModel):
    """
    Project/role pair the embedded frame runs under.

    Built once per frame load and never mutated; a config update produces a
    new instance instead.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    project_id: str = Field(..., min_length=1, alias="projectId")
    role: Optional[UserRole] = None

    @field_validator("project_id")
    @classmethod
    def _strip_project_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("project id must not be blank")
        return value


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ReadyData(BaseModel):
    timestamp: str
    status: str = "initialized"


class WidgetReadyMessage(_Message):
    widget: UserRole
    project_id: str = Field(..., alias="projectId")
    data: ReadyData


class ConfigUpdateData(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[UserRole] = None

    @field_validator("role", mode="before")
    @classmethod
    def _drop_unknown_role(cls, value: Any) -> Any:
        # An unrecognized role must not cost the project id update
        return value if value in USER_ROLES else None


class ConfigUpdateMessage(_Message):
    project_id: str = Field("", alias="projectId")
    data: Optional[ConfigUpdateData] = None


class RoleSelectedMessage(_Message):
    role: UserRole
    project_id: Optional[str] = Field(None, alias="projectId")


class PassportReadyMessage(_Message):
    data: Optional[dict[str, Any]] = None


FrameMessage = Union[WidgetReadyMessage, ConfigUpdateMessage, RoleSelectedMessage, PassportReadyMessage]

_MESSAGE_MODELS = {
    WIDGET_READY: WidgetReadyMessage,
    CONFIG_UPDATE: ConfigUpdateMessage,
    ROLE_SELECTED: RoleSelectedMessage,
    PASSPORT_READY: PassportReadyMessage,
}


def message_type(namespace: str, kind: str) -> str:
    return f"{namespace}-{kind}"


def is_namespaced(raw: Any, namespace: str) -> bool:
    """True for an object payload whose string `type` carries the namespace prefix"""
    if not isinstance(raw, dict):
        return False
    msg_type = raw.get("type")
    return isinstance(msg_type, str) and msg_type.startswith(f"{namespace}-")


def parse_message(raw: Any, namespace: str) -> Optional[FrameMessage]:
    """
    Turn a raw cross-window payload into one of the known message variants.

    Returns None for foreign, unknown or malformed payloads; never raises.
    """
    if not is_namespaced(raw, namespace):
        return None

    kind = raw["type"][len(namespace) + 1:]
    model = _MESSAGE_MODELS.get(kind)
    if model is None:
        return None

    try:
        return model.model_validate(raw)
    except ValidationError:
        return None
