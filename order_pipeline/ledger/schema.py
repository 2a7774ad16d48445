"""
SQLAlchemy Core table definitions read by the pipeline.

Both tables are owned by other services; only the columns queried here
are declared.
"""

from sqlalchemy import Column, Integer, MetaData, String, Table


metadata = MetaData()

transactions = Table(
    "transactions",
    metadata,
    Column("transaction_id", Integer, primary_key=True),
    Column("customer_id", Integer, nullable=True, index=True),
    Column("status", Integer, nullable=True),
    Column("processing_status", Integer, nullable=True),
    Column("date_start", String(32), nullable=True),
    Column("date_close", String(32), nullable=True),
)

push_tokens = Table(
    "push_tokens",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", Integer, nullable=False, index=True),
    Column("token", String(255), nullable=False),
)
