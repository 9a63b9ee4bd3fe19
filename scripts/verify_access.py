#!/usr/bin/env python3
"""
Verify Whop API access for local development.

This script checks that your Whop key can read the channel configured in
WHOP_CHANNEL_ID.
"""

import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from whop_forwarder.config import get_settings
from whop_forwarder.exceptions import WhopAPIError
from whop_forwarder.whop_client import WhopClient


async def verify_access() -> bool:
    """Fetch a single message from the configured channel."""
    settings = get_settings()
    key = settings.app_api_key or settings.company_api_key
    channel_id = settings.whop_channel_id

    print(f"🔑 Checking token: {key[:10] + '...' if key else 'NONE'}")
    print(f"💬 Target channel: {channel_id or 'NONE (will skip feed check)'}")

    if not key:
        print("❌ No WHOP_API_KEY found in environment or .env")
        return False

    if not channel_id:
        print("\nℹ️  Add WHOP_CHANNEL_ID to .env to test specific channel access.")
        return True

    print(f"📡 Attempting to fetch messages from {channel_id}...")
    client = WhopClient(settings)
    try:
        messages = await client.fetch_messages(channel_id, 1)
    except WhopAPIError as e:
        print(f"❌ Access denied to channel {channel_id}:")
        print(f"   {e}")
        print("\n💡 Possible reasons:")
        print("   1. The chat id is incorrect.")
        print("   2. Your app is not installed in the company that owns this chat.")
        print("   3. Your app does not have 'Messages' read permissions.")
        return False

    print(f"✅ Success! Found {len(messages)} messages.")
    print("✅ Access is configured correctly.")
    return True


if __name__ == "__main__":
    import asyncio

    print("🚀 Whop Forwarder - Access Check")
    print("=" * 50)

    success = asyncio.run(verify_access())
    sys.exit(0 if success else 1)
