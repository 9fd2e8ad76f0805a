from typing import List, Set, Union

from pydantic import TypeAdapter

from tableside.application.persisted import read_value, write_value
from tableside.core import keys
from tableside.interfaces.IKeyValueStore import IKeyValueStore

_favorites_adapter = TypeAdapter(List[Union[str, int]])

class FavoritesStore:
    """Liked dishes per restaurant. Device-wide, shared by every table session."""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    def get(self, slug: str) -> Set[str]:
        values = read_value(self.store, keys.favorites_key(slug), _favorites_adapter)
        return {str(v) for v in values} if values else set()

    def toggle(self, slug: str, dish_id: str) -> Set[str]:
        favs = self.get(slug)
        if dish_id in favs:
            favs.discard(dish_id)
        else:
            favs.add(dish_id)
        write_value(self.store, keys.favorites_key(slug), _favorites_adapter, sorted(favs))
        return favs
