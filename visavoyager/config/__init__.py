"""Configuration system for providers, personas and the search loop."""

from .loader import (
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    list_profiles,
    ProfileConfig,
    ProviderConfig,
    PersonaConfig,
    PersonasConfig,
    EvaluatorConfig,
    SearchLoopConfig,
    VisionConfig,
)
from .factory import (
    MockLLMProvider,
    MockReply,
    MockRequest,
    create_provider,
    create_personas,
    create_evaluator,
    create_search_loop,
    create_from_profile,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_env",
    "load_config_from_yaml",
    "list_profiles",
    "ProfileConfig",
    "ProviderConfig",
    "PersonaConfig",
    "PersonasConfig",
    "EvaluatorConfig",
    "SearchLoopConfig",
    "VisionConfig",
    # Factory
    "MockLLMProvider",
    "MockReply",
    "MockRequest",
    "create_provider",
    "create_personas",
    "create_evaluator",
    "create_search_loop",
    "create_from_profile",
]
