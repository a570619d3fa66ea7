from abc import abstractmethod
from typing import Protocol

from roomshare.domain.roommate.model.value import PostId, RoomOwnership, SeekingPost
from roomshare.domain.shared.port import Port


class PostDirectory(Port, Protocol):
    """Read access to roommate-seeking posts owned by the listings service."""

    @abstractmethod
    async def get_post(self, post_id: PostId) -> SeekingPost | None: ...

    @abstractmethod
    async def resolve_room_ownership(self, post: SeekingPost) -> RoomOwnership:
        """Platform-hosted iff the post's room instance is a platform room."""
        ...
