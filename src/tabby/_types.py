"""Shared type definitions for tabby."""

from collections.abc import AsyncIterator, Mapping
from typing import Literal

# Classification bucket of a path in the content tree
type Bucket = Literal["template", "asset", "passthrough", "ignored"]

# Whether a path sits below a dot-directory
type Visibility = Literal["public", "hidden"]

# Lifecycle state of a SiteServer
type ServerState = Literal["idle", "serving", "failed", "stopped"]

# Route URL path (e.g., "/blog", "/style.css", "/repo/.git/")
type RoutePath = str

# Template name: relative path with the template extension stripped
type TemplateName = str

# Relative POSIX path of an asset inside the content root
type AssetPath = str

# Extension (with leading dot) to MIME type
type MimeTable = Mapping[str, str]

# Streamed response body
type ByteStream = AsyncIterator[bytes]
