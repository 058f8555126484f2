from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Class to store all the tuning defaults of the engine.

    Every value can be overridden with a ``PREFERENCE_TREE_`` prefixed
    environment variable or a ``.env`` file.
    """

    # Oblique tree
    OBLIQUE_MAX_DEPTH: int = 6
    OBLIQUE_MIN_LEAF_SIZE: int = 3
    OBLIQUE_MIN_INFO_GAIN: float = 1e-4
    MIN_BRANCH_FRACTION: float = 0.05
    CATEGORICAL_BOOST: float = 6.0
    CATEGORICAL_PREFERENCE_RATIO: float = 0.35
    NUM_OBLIQUE_CANDIDATES: int = 8
    MAX_AXIS_THRESHOLDS: int = 12
    EXACT_FARTHEST_PAIR_LIMIT: int = 100
    FARTHEST_PAIR_SAMPLE_SIZE: int = 50

    # Feature encoding
    NUMERIC_FRACTION: float = 0.6
    MAX_CATEGORICAL_CARDINALITY: int = 16
    MIN_CATEGORY_SUPPORT: int = 2
    MIN_CATEGORY_FRACTION: float = 0.02

    # Question tree
    QUESTION_TREE_MAX_DEPTH: int = 4
    QUESTION_TREE_MIN_LEAF_SIZE: int = 3
    QUESTION_TREE_MIN_GAIN: float = 1e-3
    QUESTION_TREE_MAX_CATEGORIES: int = 6
    QUESTION_TREE_MAX_THRESHOLDS: int = 25
    MAX_PRODUCTS_PER_LEAF: int = 50
    REPRESENTATIVE_PRODUCTS: int = 3

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_prefix="PREFERENCE_TREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise the settings sources order.

        Order: initialization, environment variables, dotenv, then file secrets.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


settings = Settings()
