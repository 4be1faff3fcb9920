"""Shared base for all wire models exchanged with API clients and the store."""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model for every JSON contract of the entity matching API.

    Field names are snake_case in Python and camelCase on the wire
    (e.g. owned_by_user_id <-> "ownedByUserId"). Both spellings are accepted
    when parsing.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def lookup_enum_member(enum_cls: type[Enum], value: object) -> Enum | None:
    """Resolve lenient enum input to a member of a string valued enum.

    Accepts the member token in any letter case ("public", "PUBLIC") and the
    legacy numeric ordinals older clients still send (0, 1, "2").

    Args:
        enum_cls (type[Enum]): The enum to resolve against.
        value (object): The raw input value.

    Returns:
        Enum | None: The matching member, or None so that the enum raises.
    """
    members = list(enum_cls)
    if isinstance(value, int) and not isinstance(value, bool):
        return members[value] if 0 <= value < len(members) else None
    if isinstance(value, str):
        token = value.strip().lower()
        for member in members:
            if str(member.value).lower() == token:
                return member
        if token.isdigit():
            return lookup_enum_member(enum_cls, int(token))
    return None
