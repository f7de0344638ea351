"""Runtime configuration for scan and commit sessions.

Defaults describe a conventional Android project. Hosts pass an
``ExtractorConfig`` to ``ExtractionSession``; ``from_env`` layers a few
``EXTERNALIZER_*`` environment variables over the defaults.
"""

import os

from pydantic import BaseModel, Field

DISABLED_NAMESPACE = "DISABLED"


class ExtractorConfig(BaseModel):
    """Settings shared by the scanner, table manager and rewrite builder."""

    table_paths: list[str] = Field(
        default_factory=lambda: [
            "app/src/main/res/values/strings.xml",
            "src/main/res/values/strings.xml",
        ],
        description="Relative paths searched for the strings table; the first is used for creation",
    )
    table_name: str = Field(default="string", description="Resource type used in references")
    text_attributes: list[str] = Field(
        default_factory=lambda: [
            "android:text",
            "android:label",
            "android:contentDescription",
            "android:hint",
            "android:title",
        ],
        description="Markup attributes that carry user-facing text",
    )
    test_dirs: list[str] = Field(
        default_factory=lambda: ["test", "androidTest"],
        description="Path segments marking test-only source sets",
    )
    fallback_context_prefix: str = Field(
        default="App.instance.",
        description="Receiver prefix used when no context field or Activity/Fragment is found",
    )
    declarative_accessor: str = Field(
        default="androidx.compose.ui.res.stringResource",
        description="Fully-qualified resource accessor for declarative UI code",
    )
    lookup_function: str = Field(
        default="getString", description="Imperative string lookup function"
    )
    max_workers: int = Field(default=4, ge=1, description="Thread pool size for scanning")

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """Build a config from defaults overridden by environment variables.

        Recognized variables:
            EXTERNALIZER_FALLBACK_PREFIX: fallback_context_prefix
            EXTERNALIZER_TABLE_PATH: prepended to table_paths
            EXTERNALIZER_MAX_WORKERS: max_workers
        """
        config = cls()
        prefix = os.getenv("EXTERNALIZER_FALLBACK_PREFIX")
        if prefix is not None:
            config.fallback_context_prefix = prefix
        table_path = os.getenv("EXTERNALIZER_TABLE_PATH")
        if table_path:
            config.table_paths = [table_path, *config.table_paths]
        workers = os.getenv("EXTERNALIZER_MAX_WORKERS")
        if workers:
            config.max_workers = max(1, int(workers))
        return config
