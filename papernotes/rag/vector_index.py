import json
from typing import List, Optional

from pymilvus import (
    connections,
    FieldSchema,
    CollectionSchema,
    DataType,
    Collection,
    utility,
)

from papernotes.core.exceptions import ConfigurationError
from papernotes.core.models import EmbeddingRecord, RetrievedSegment
from papernotes.core.settings import get_settings

MAX_TEXT_LEN = 65535
MAX_URL_LEN = 2048


def _clip_utf8(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` UTF-8 bytes without splitting a character."""
    data = text.encode("utf-8")
    if len(data) <= limit:
        return text
    return data[:limit].decode("utf-8", "ignore")


class VectorIndex:
    """Wrapper around Milvus vector store holding one row per paper segment."""

    def __init__(
        self,
        uri: str | None = None,
        dim: int | None = None,
        token: str | None = None,
        collection_name: str = "embeddings",
    ) -> None:
        settings = get_settings()
        self.dim = dim if dim is not None else getattr(settings, "embedding_dim", 768)
        self.uri = uri or getattr(settings, "milvus_uri", "")
        if not self.uri:
            raise ConfigurationError("MILVUS_URI is not set")
        # pymilvus requires an explicit scheme; accept bare "host:port" too
        if not self.uri.startswith("http://") and not self.uri.startswith("https://"):
            self.uri = f"http://{self.uri}"
        token = token if token is not None else getattr(settings, "milvus_token", "")

        if token:
            connections.connect("default", uri=self.uri, token=token)
        else:
            connections.connect("default", uri=self.uri)

        self.collection_name = collection_name
        self._ensure_collection()

    # Internal helpers -------------------------------------------------
    def _ensure_collection(self) -> None:
        if utility.has_collection(self.collection_name):
            return

        fields = [
            FieldSchema(name="id", dtype=DataType.INT64, is_primary=True, auto_id=True),
            FieldSchema(name="url", dtype=DataType.VARCHAR, max_length=MAX_URL_LEN),
            # 0 marks a segment without a known page
            FieldSchema(name="page_number", dtype=DataType.INT64),
            FieldSchema(name="text", dtype=DataType.VARCHAR, max_length=MAX_TEXT_LEN),
            FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=self.dim),
        ]
        schema = CollectionSchema(fields, description="paper segment embeddings")
        collection = Collection(self.collection_name, schema=schema)

        index_params = {
            "index_type": "HNSW",
            "metric_type": "COSINE",
            "params": {"M": 16, "efConstruction": 200},
        }
        collection.create_index(field_name="embedding", index_params=index_params)
        collection.load()

    # Public API -------------------------------------------------------
    def insert_embeddings(self, records: List[EmbeddingRecord]) -> None:
        """Insert one row per segment embedding."""
        if not records:
            return
        # VARCHAR limits are counted in UTF-8 bytes
        for r in records:
            if len(r.url.encode("utf-8")) > MAX_URL_LEN:
                raise ValueError(f"url exceeds {MAX_URL_LEN} bytes: {r.url[:80]}...")
        collection = Collection(self.collection_name)
        data = [
            [r.url for r in records],
            [r.page_number or 0 for r in records],
            [_clip_utf8(r.text, MAX_TEXT_LEN) for r in records],
            [r.embedding for r in records],
        ]
        collection.insert(data)
        collection.flush()

    def search(
        self, query_vec: List[float], k: int = 4, url: Optional[str] = None
    ) -> List[RetrievedSegment]:
        """Return the ``k`` nearest segments, optionally restricted to one paper."""
        collection = Collection(self.collection_name)
        collection.load()
        search_params = {"metric_type": "COSINE", "params": {"ef": 64}}
        expr = f"url == {json.dumps(url)}" if url else None
        results = collection.search(
            data=[query_vec],
            anns_field="embedding",
            param=search_params,
            limit=k,
            expr=expr,
            output_fields=["url", "page_number", "text"],
        )
        hits: List[RetrievedSegment] = []
        for hit in results[0]:
            entity = hit.entity
            hits.append(
                RetrievedSegment(
                    text=entity.get("text") or "",
                    url=entity.get("url"),
                    page_number=entity.get("page_number") or None,
                    score=hit.score,
                )
            )
        return hits
