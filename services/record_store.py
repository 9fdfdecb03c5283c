"""
Record store - Azure Cosmos DB or local JSON fallback

Records live in named collections (courses, sessions, students, teachers,
months, groups). Every backend exposes the same small CRUD/query contract.
"""
import os
import json
import uuid
import logging
from datetime import datetime
from config import Config

logger = logging.getLogger(__name__)

_storage_instance = None

COSMOS_SYSTEM_FIELDS = ('_rid', '_self', '_etag', '_attachments', '_ts', 'collection')


def _generate_id(collection):
    """Generate a unique record id"""
    prefix = collection[:-1] if collection.endswith('s') else collection
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    unique_id = str(uuid.uuid4())[:8]
    return f"{prefix}_{timestamp}_{unique_id}"


def get_storage():
    """Return the store singleton"""
    global _storage_instance
    if _storage_instance is None:
        if Config.use_cosmos_db():
            _storage_instance = CosmosStorage()
        else:
            _storage_instance = LocalJsonStorage()
    return _storage_instance


def set_storage(storage):
    """Replace the store singleton (used by tests and tooling)"""
    global _storage_instance
    _storage_instance = storage
    return storage


class LocalJsonStorage:
    """Store backed by a single local JSON file (development fallback)"""

    def __init__(self, filepath=None):
        self.filepath = filepath or Config.RECORDS_FILE
        os.makedirs(os.path.dirname(self.filepath), exist_ok=True)
        if not os.path.exists(self.filepath):
            self._save_data({})
        logger.info(f"Local JSON store ready: {self.filepath}")

    def _load_data(self):
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, FileNotFoundError):
            return {}

    def _save_data(self, data):
        with open(self.filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def create_record(self, collection, record):
        """Insert a record under a generated id"""
        data = self._load_data()
        record_id = _generate_id(collection)
        stored = {**record, "id": record_id}
        data.setdefault(collection, {})[record_id] = stored
        self._save_data(data)
        logger.debug(f"Record created: {collection}/{record_id}")
        return stored

    def set_record(self, collection, record_id, record):
        """Write a record under an explicit id"""
        data = self._load_data()
        stored = {**record, "id": record_id}
        data.setdefault(collection, {})[record_id] = stored
        self._save_data(data)
        return stored

    def get_record_by_id(self, collection, record_id):
        if not record_id:
            return None
        return self._load_data().get(collection, {}).get(record_id)

    def get_all_records(self, collection):
        return list(self._load_data().get(collection, {}).values())

    def query_by_field(self, collection, field, value):
        return [r for r in self.get_all_records(collection) if r.get(field) == value]

    def update_record(self, collection, record_id, updates):
        """Merge partial fields into a record; returns the merged record"""
        data = self._load_data()
        record = data.get(collection, {}).get(record_id)
        if record is None:
            return None
        record.update(updates)
        record["id"] = record_id
        self._save_data(data)
        return record

    def delete_record(self, collection, record_id):
        data = self._load_data()
        if record_id in data.get(collection, {}):
            del data[collection][record_id]
            self._save_data(data)
            logger.info(f"Record deleted: {collection}/{record_id}")
            return True
        return False


class CosmosStorage:
    """Store backed by Azure Cosmos DB; one container, partitioned by collection"""

    def __init__(self):
        from azure.cosmos import CosmosClient, PartitionKey
        self.client = CosmosClient(Config.COSMOS_DB_ENDPOINT, Config.COSMOS_DB_KEY)
        self.database = self.client.create_database_if_not_exists(id=Config.COSMOS_DATABASE_NAME)
        self.container = self.database.create_container_if_not_exists(
            id=Config.COSMOS_CONTAINER_NAME,
            partition_key=PartitionKey(path="/collection")
        )
        logger.info("Azure Cosmos DB store ready")

    @staticmethod
    def _strip(doc):
        return {k: v for k, v in doc.items() if k not in COSMOS_SYSTEM_FIELDS}

    def create_record(self, collection, record):
        record_id = _generate_id(collection)
        doc = {**record, "id": record_id, "collection": collection}
        self.container.create_item(body=doc)
        logger.debug(f"Record created: {collection}/{record_id}")
        return self._strip(doc)

    def set_record(self, collection, record_id, record):
        doc = {**record, "id": record_id, "collection": collection}
        self.container.upsert_item(body=doc)
        return self._strip(doc)

    def get_record_by_id(self, collection, record_id):
        from azure.cosmos.exceptions import CosmosResourceNotFoundError
        if not record_id:
            return None
        try:
            doc = self.container.read_item(item=record_id, partition_key=collection)
        except CosmosResourceNotFoundError:
            return None
        return self._strip(doc)

    def get_all_records(self, collection):
        query = "SELECT * FROM c WHERE c.collection = @collection"
        docs = self.container.query_items(
            query=query,
            parameters=[{"name": "@collection", "value": collection}],
            partition_key=collection,
        )
        return [self._strip(d) for d in docs]

    def query_by_field(self, collection, field, value):
        query = "SELECT * FROM c WHERE c.collection = @collection AND c[@field] = @value"
        docs = self.container.query_items(
            query=query,
            parameters=[
                {"name": "@collection", "value": collection},
                {"name": "@field", "value": field},
                {"name": "@value", "value": value},
            ],
            partition_key=collection,
        )
        return [self._strip(d) for d in docs]

    def update_record(self, collection, record_id, updates):
        from azure.cosmos.exceptions import CosmosResourceNotFoundError
        try:
            doc = self.container.read_item(item=record_id, partition_key=collection)
        except CosmosResourceNotFoundError:
            return None
        doc.update(updates)
        doc["id"] = record_id
        doc["collection"] = collection
        self.container.replace_item(item=record_id, body=doc)
        return self._strip(doc)

    def delete_record(self, collection, record_id):
        from azure.cosmos.exceptions import CosmosResourceNotFoundError
        try:
            self.container.delete_item(item=record_id, partition_key=collection)
        except CosmosResourceNotFoundError:
            logger.warning(f"Delete of missing record: {collection}/{record_id}")
            return False
        logger.info(f"Record deleted: {collection}/{record_id}")
        return True
