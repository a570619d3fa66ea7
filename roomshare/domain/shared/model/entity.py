from pydantic import BaseModel, ConfigDict


class Entity(BaseModel):
    """Base for identifiable domain objects (aggregates, events)."""

    model_config = ConfigDict(validate_assignment=True)
