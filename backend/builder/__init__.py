"""
GoDev Builder Package.

Compiler invocation and artifact management.
Requires Python 3.11+.
"""

from builder.go_builder import BuildArtifact, Builder, artifact_path_for

__all__ = ["BuildArtifact", "Builder", "artifact_path_for"]
