"""Identity functionality: id aliases and the generator protocol."""

from worldline.core.identity.models import EntityId, IdGenerator, StorageId, WorldId

__all__ = [
    "EntityId",
    "IdGenerator",
    "StorageId",
    "WorldId",
]
