"""Image reference resolution for catalogue entries.

A reference is usable when it is an ``https://`` URL, an inline ``data:``
URI, or an ``asset:<key>`` whose key is listed in the bundled asset
manifest.  Anything else (plain ``http``, unknown asset keys, empty
strings) is unusable and gets filtered out at build time.
"""

from __future__ import annotations

ASSET_SCHEME = "asset:"


class AssetResolver:
    """Map image references to servable URLs.

    Args:
        known_assets: Manifest of ``asset:`` keys to served paths.
    """

    def __init__(self, known_assets: dict[str, str] | None = None) -> None:
        self.known_assets = dict(known_assets or {})

    def resolve(self, ref: str | None) -> str | None:
        """Return the servable URL for *ref*, or ``None`` when unusable."""
        if not ref:
            return None
        if ref.startswith(("https://", "data:")):
            return ref
        if ref.startswith(ASSET_SCHEME):
            return self.known_assets.get(ref[len(ASSET_SCHEME):])
        return None

    def is_usable(self, ref: str | None) -> bool:
        return self.resolve(ref) is not None
