"""Connect a Linux host to a PIA WireGuard server with an auth token.

The modules here cover the whole connection workflow: settings
(:mod:`wgconnect.config`), key generation (:mod:`wgconnect.keys`), the key
exchange (:mod:`wgconnect.pia_api`), configuration rendering and merging
(:mod:`wgconnect.generate_wg_conf`, :mod:`wgconnect.conf_merge`), interface
control (:mod:`wgconnect.wg_quick`) and the port forwarding hand-off
(:mod:`wgconnect.port_forwarding`). The interactive entry point lives in
the top-level ``main`` module.
"""

from __future__ import annotations

from .conf_merge import (
    ConfigDocument,
    ConfigMergeError,
    FieldAnchor,
    FieldUpdate,
    MalformedLineError,
    PlacementError,
    SectionAnchor,
    merge,
    tunnel_updates,
)

__all__ = [
    "ConfigDocument",
    "ConfigMergeError",
    "FieldAnchor",
    "FieldUpdate",
    "MalformedLineError",
    "PlacementError",
    "SectionAnchor",
    "merge",
    "tunnel_updates",
]
