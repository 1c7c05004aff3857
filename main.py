"""
Wonderland Account Assistant - Main Entry Point

Run with:
    streamlit run ui/chat_app.py
    uvicorn api.server:app --port 8000

Or for a configuration check:
    python main.py
"""

import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import (
    setup_environment, validate_config, VERSION, PRODUCT_NAME,
    PROJECT_ID, ACCOUNTS_TABLE, AIRTABLE_BASE_ID,
)
from tools.record_store import RecordStoreError, get_gateway


def main():
    """Test configuration and show status."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    setup_environment()

    print("=" * 60)
    print(f"{PRODUCT_NAME} Account Assistant v{VERSION}")
    print("=" * 60)

    print("\n📋 Configuration:")
    config = validate_config()
    for key, ok in config.items():
        if key != "all_ok":
            status = "✅" if ok else "❌"
            print(f"  {status} {key}")

    print(f"\n  Project ID: {PROJECT_ID}")
    print(f"  Airtable base: {AIRTABLE_BASE_ID or '(not set)'} / table: {ACCOUNTS_TABLE}")

    print("\n🔗 Record store:")
    if config["airtable_api_key"] and config["airtable_base"]:
        try:
            industries = get_gateway().list_field_values("Industry")
            print(f"  ✅ Connected ({len(industries)} industry option(s))")
            for industry in industries[:5]:
                print(f"    - {industry}")
        except RecordStoreError as e:
            print(f"  ❌ Failed: {e}")
    else:
        print("  ⏭️  Skipped (Airtable not configured)")

    print("\n" + "=" * 60)
    print("To start the UI:")
    print("  streamlit run ui/chat_app.py")
    print("To start the API:")
    print("  uvicorn api.server:app --port 8000")
    print("=" * 60)


if __name__ == "__main__":
    main()
