"""Selection: which parts of a database contribute to the digest."""

import enum


class Selection(enum.Enum):
    """What to hash, mirroring the stock dbhash ``--schema-only`` and
    ``--without-schema`` flags."""

    SCHEMA_AND_CONTENT = "schema-and-content"
    SCHEMA_ONLY = "schema-only"
    CONTENT_ONLY = "content-only"

    @property
    def includes_content(self) -> bool:
        return self is not Selection.SCHEMA_ONLY

    @property
    def includes_schema(self) -> bool:
        return self is not Selection.CONTENT_ONLY

    @classmethod
    def from_flags(cls, schema_only: bool = False, without_schema: bool = False) -> "Selection":
        """Map the reference tool's command-line flags onto a Selection.

        Raises:
            ValueError: If both flags are set.
        """
        if schema_only and without_schema:
            raise ValueError("--schema-only and --without-schema are mutually exclusive")
        if schema_only:
            return cls.SCHEMA_ONLY
        if without_schema:
            return cls.CONTENT_ONLY
        return cls.SCHEMA_AND_CONTENT
