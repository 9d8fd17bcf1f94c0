from analytics_etl.transformers.fact_transformer import (
    FactTransformer,
    categorize_customer,
    categorize_order_value,
)

__all__ = ["FactTransformer", "categorize_customer", "categorize_order_value"]
