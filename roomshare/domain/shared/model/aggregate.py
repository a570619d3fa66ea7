from roomshare.domain.shared.model.entity import Entity


class Aggregate(Entity):
    """Consistency boundary; persisted and loaded as a whole by its repository."""
