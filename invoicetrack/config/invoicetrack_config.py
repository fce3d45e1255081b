"""
InvoiceTrack Configuration Management

This module provides configuration management for InvoiceTrack.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default_config.yaml'
USER_CONFIG_PATH = Path.home() / '.invoicetrack' / 'config.yaml'


class InvoiceTrackConfig:
    """
    Manages system-wide configuration for InvoiceTrack

    Settings come from the packaged default_config.yaml, deep-merged with an
    optional user file and then with any overrides passed in. Instances are
    plain objects: build one and hand it to Database and the services.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None, config_file: Optional[Path] = None,
                 load_user_config: bool = True):
        """
        Initialize configuration

        Args:
            overrides: Values merged on top of the file configuration
            config_file: User configuration file. Defaults to ~/.invoicetrack/config.yaml
                when that file exists.
            load_user_config: Set to False to skip the user configuration file
        """
        with open(DEFAULT_CONFIG_PATH, 'r') as f:
            self.config: Dict[str, Any] = yaml.safe_load(f)

        self.config_file = Path(config_file) if config_file else USER_CONFIG_PATH
        if config_file is not None and not self.config_file.exists():
            raise RuntimeError(f"Configuration file not found: {self.config_file}")
        if load_user_config and self.config_file.exists():
            self._load_config()

        if overrides:
            self._update_config_recursive(self.config, overrides)
        self._validate_config()

    @classmethod
    def from_file(cls, config_path: str) -> 'InvoiceTrackConfig':
        """Load configuration from file

        Args:
            config_path: Path to configuration file

        Returns:
            InvoiceTrackConfig instance
        """
        return cls(config_file=Path(config_path))

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'InvoiceTrackConfig':
        """Build a configuration from defaults plus a dictionary, ignoring any user file"""
        return cls(overrides=config, load_user_config=False)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value

        Args:
            key: Configuration key (dot notation)
            default: Default value if key not found

        Returns:
            Configuration value
        """
        try:
            value = self.config
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value

        Args:
            key: Configuration key (dot notation)
            value: Configuration value
        """
        keys = key.split('.')
        config = self.config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value

    def _load_config(self) -> None:
        """Load configuration from file"""
        try:
            with open(self.config_file, 'r') as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuntimeError(f"Invalid YAML in configuration file: {str(e)}")
        if file_config is None:
            raise RuntimeError("Configuration file is empty")
        self._update_config_recursive(self.config, file_config)
        logger.info(f"Configuration loaded from {self.config_file}")

    def _validate_config(self) -> None:
        """Validate configuration structure and values"""
        if not isinstance(self.config, dict):
            raise RuntimeError("Configuration must be a dictionary")

        required_sections = ['database', 'logging', 'uploads', 'pagination', 'locking']
        for section in required_sections:
            if section not in self.config:
                raise RuntimeError(f"Missing required configuration section: {section}")

        db_type = self.config['database'].get('type')
        if db_type not in ['sqlite', 'postgresql', 'postgres']:
            raise RuntimeError(f"Unsupported database type: {db_type}")

        if self.get('pagination.default_page_size', 0) < 1:
            raise RuntimeError("pagination.default_page_size must be at least 1")
        if self.get('pagination.max_page_size', 0) < self.get('pagination.default_page_size'):
            raise RuntimeError("pagination.max_page_size must not be below the default page size")
        if self.get('locking.timeout_seconds', 0) <= 0:
            raise RuntimeError("locking.timeout_seconds must be positive")

    def validate(self) -> bool:
        """Validate configuration"""
        try:
            self._validate_config()
            return True
        except RuntimeError as e:
            logger.error(f"Configuration validation failed: {str(e)}")
            return False

    def save(self, path: Optional[Path] = None) -> Path:
        """Save configuration to file, defaulting to the user configuration file"""
        target = Path(path) if path else USER_CONFIG_PATH
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w') as f:
            yaml.safe_dump(self.config, f, default_flow_style=False)
        logger.info(f"Configuration saved to {target}")
        return target

    def _update_config_recursive(self, base: Dict[str, Any], update: Dict[str, Any]) -> None:
        """Update configuration recursively"""
        for key, value in update.items():
            if isinstance(value, dict) and key in base and isinstance(base[key], dict):
                self._update_config_recursive(base[key], value)
            else:
                base[key] = value

    def get_database_config(self) -> Dict[str, Any]:
        """Get database configuration"""
        return self.config.get('database', {})

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration"""
        return self.config.get('logging', {})

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration"""
        return copy.deepcopy(self.config)


def configure_logging(config: InvoiceTrackConfig) -> None:
    """
    Apply the logging section of a configuration to the root logger

    Args:
        config: Configuration holding logging.level, logging.format and logging.file
    """
    logging_config = config.get_logging_config()
    level = getattr(logging, str(logging_config.get('level', 'INFO')).upper(), logging.INFO)
    handlers = [logging.StreamHandler()]
    if logging_config.get('file'):
        log_path = Path(logging_config['file'])
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    logging.basicConfig(
        level=level,
        format=logging_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        handlers=handlers,
        force=True,
    )
