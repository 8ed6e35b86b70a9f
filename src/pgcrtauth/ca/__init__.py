"""Certificate engine for PostgreSQL server certificates.

This module provides:
- Private key generation keyed by a key-size token
- Certificate templates and descriptors
- Certificate/key pairs: creation, signing, PEM files
- A file-backed certificate authority
"""

from pgcrtauth.ca.authority import CertificateAuthority
from pgcrtauth.ca.keys import KeySize
from pgcrtauth.ca.pair import Pair
from pgcrtauth.ca.template import Template

__all__ = ["CertificateAuthority", "KeySize", "Pair", "Template"]
