"""
Database initialization script.
"""
from clubfee.db.session import init_db

# Import all models so SQLAlchemy can register them
from clubfee.models import Member, Meeting, Settlement, SettlementMember  # noqa: F401

if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Database initialized successfully!")
