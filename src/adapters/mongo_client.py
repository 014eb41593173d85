from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection


@dataclass
class MongoClientFactory:
    uri: str
    db_name: str
    _client: Optional[MongoClient] = field(default=None, init=False, repr=False)

    def get_collection(self, collection_name: str) -> Collection:
        # MongoClient pools connections and is safe to share across threads.
        if self._client is None:
            self._client = MongoClient(self.uri)
        return self._client[self.db_name][collection_name]
