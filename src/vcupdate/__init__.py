"""vcupdate - version catalog update engine.

Reads Gradle-style version catalogs, looks up newer versions in Maven
repositories and writes proposed catalogs to a separate directory.
"""

__version__ = "0.1.0"
