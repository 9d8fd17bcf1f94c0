from analytics_etl.extractors.base import OperationalSource
from analytics_etl.extractors.extractor import Extractor
from analytics_etl.extractors.sql_source import SQLOperationalSource

__all__ = ["OperationalSource", "Extractor", "SQLOperationalSource"]
