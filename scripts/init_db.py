#!/usr/bin/env python3
"""
Initialize the Office BU local store.

Creates the key/value table in the configured database file and reports
what is already stored there.
"""
from office_bu.config.settings import ConfigLoader
from office_bu.database.connection import DatabaseConfig, DatabaseManager

def main():
    """Initialize the local store database."""

    config = ConfigLoader.load_app_config()
    db_config = DatabaseConfig(config.db_path)
    print(f"Initializing local store at: {db_config.db_path}")

    with DatabaseManager(db_config) as db:
        db.initialize()
        conn = db.get_connection()

        row = conn.execute(
            "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        keys = conn.execute("SELECT COUNT(*) AS n FROM local_storage").fetchone()

        if row:
            print(f"✓ Local store initialized successfully!")
            print(f"  Schema version: {row['version']}")
            print(f"  Description: {row['description']}")
            print(f"  Stored keys: {keys['n']}")
        else:
            print("✗ Local store initialization may have failed")

if __name__ == "__main__":
    main()
