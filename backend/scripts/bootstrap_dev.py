"""
Dev bootstrap script — a workspace, a player and an API key for local work.

Usage:
    python -m scripts.bootstrap_dev [principal_id]

This will:
  1. Create a workspace named "Dev Workspace" owned by the principal
  2. Add a sample player so /avatars?type=player has something to resolve
  3. Issue an API key linked to the workspace (replacing any old key)
  4. Print a ready-to-paste curl for POST /upview/feedback
"""

import asyncio
import sys

from upview.core.database import async_session_factory, engine
from upview.models.player import Player
from upview.models.workspace import Workspace
from upview.services.credentials import issue_credential

DEFAULT_PRINCIPAL = "00000000-0000-0000-0000-000000000001"


async def main(principal_id: str) -> None:
    async with async_session_factory() as session:
        workspace = Workspace(owner_id=principal_id, name="Dev Workspace")
        session.add(workspace)
        await session.merge(Player(id="1", name="Roblox"))
        await session.flush()  # get workspace.id

        credential = await issue_credential(session, principal_id, workspace.id)

    print()
    print("=" * 60)
    print("  Dev Bootstrap Complete")
    print("=" * 60)
    print()
    print(f"  Principal:    {principal_id}")
    print(f"  Workspace ID: {workspace.id}")
    print(f"  API Key:      {credential.key}")
    print()
    print("  curl -X POST http://localhost:8000/upview/feedback \\")
    print(f"       -H 'x-api-key: {credential.key}' \\")
    print("       -H 'Content-Type: application/json' \\")
    print("       -d '{\"text\": \"The jump button does not work\"}'")
    print("=" * 60)
    print()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_PRINCIPAL))
