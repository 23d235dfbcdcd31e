"""Config module."""

from typing import Dict, Any
from .models import RepoConfig, ToolConfig, StackConfig

class Config(StackConfig):
    """Config object holding repository and tool config.

    Built from the raw dict produced by the config parser so callers can
    pass partially filled sections.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        super().__init__(
            repo=RepoConfig.model_validate(config.get('repo', {})),
            tool=ToolConfig.model_validate(config.get('tool', {})),
        )

def default_config() -> Config:
    """Get default config without reading any file."""
    return Config({
        'repo': {
            'github_remote': 'origin',
        },
        'tool': {
            'concurrency': 0,
        }
    })
