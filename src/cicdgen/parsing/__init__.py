"""README parsing collaborator."""

from cicdgen.parsing.readme import BasicReadmeParser, scan_readme

__all__ = ["BasicReadmeParser", "scan_readme"]
