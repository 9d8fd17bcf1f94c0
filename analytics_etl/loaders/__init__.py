from analytics_etl.loaders.chunked_loader import ChunkedLoader, LoadResult
from analytics_etl.loaders.warehouse import SQLWarehouseWriter, WarehouseWriter

__all__ = ["ChunkedLoader", "LoadResult", "SQLWarehouseWriter", "WarehouseWriter"]
