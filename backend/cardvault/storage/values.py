import enum

from pydantic import BaseModel


def plain_values(model: BaseModel, partial: bool = False) -> dict:
    """
    Field values of a request model, keyed by attribute name.

    Enum members are flattened to their values. With ``partial`` only the
    fields the client actually sent (and did not null out) are returned.
    """
    data = model.model_dump(exclude_unset=partial, exclude_none=partial)
    return {k: (v.value if isinstance(v, enum.Enum) else v) for k, v in data.items()}
