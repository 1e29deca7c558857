# cgshare/models/entries_table.py
# Model for short-lived share entries

from sqlalchemy import Table, Column, Text, Integer, LargeBinary, Index

from cgshare.db.base import metadata


entries = Table(
    'entries',
    metadata,
    Column('id', Text, primary_key=True),  # short alphanumeric ID
    Column('created', Integer, nullable=False),  # unix seconds
    Column('type', Integer, nullable=False),  # EntryType value
    Column('password_hash', LargeBinary, nullable=True),  # bcrypt hash
    Column('data', LargeBinary, nullable=False),  # encoded payload
    Index('ix_entries_created', 'created'),
)
