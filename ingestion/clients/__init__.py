from .postgres_client import PostgresClient, get_postgres_client
from .slack_client import SlackNotifier
from .warehouse_client import (
    BigQueryWarehouseClient,
    PostgresWarehouseClient,
    get_warehouse_client,
)

__all__ = [
    "PostgresClient",
    "get_postgres_client",
    "SlackNotifier",
    "BigQueryWarehouseClient",
    "PostgresWarehouseClient",
    "get_warehouse_client",
]
