"""
Fixed tenants and users shared by the import tests.
"""

from sqlalchemy.engine import Engine

from bulk_import.db.models import Organization, create_tables

TEST_ORG_ID = "00000000-0000-0000-0000-0000000000aa"
REPOSITORY_ORG_ID = "00000000-0000-0000-0000-0000000000bb"
TEST_USER_ID = "00000000-0000-0000-0000-0000000000cc"


def seed_database(engine: Engine) -> None:
    """Create the import tables and the two tenants the tests rely on."""
    create_tables(engine)
    with engine.begin() as conn:
        conn.execute(Organization.__table__.insert(), [
            {"id": TEST_ORG_ID, "name": "Acme Traders", "slug": "acme-traders"},
            {"id": REPOSITORY_ORG_ID, "name": "Redefine Marcom", "slug": "redefine-marcom-pvt-ltd"},
        ])
