"""
Opaque QR identifiers for users and apparel.
Only uniqueness matters; rendering the actual QR image happens client-side.
"""

import uuid


def user_qr_code(user_id: int) -> str:
    return f"user-{user_id}-{uuid.uuid4().hex[:16]}"


def apparel_qr_code(owner_id: int) -> str:
    return f"apparel-{owner_id}-{uuid.uuid4().hex[:16]}"
