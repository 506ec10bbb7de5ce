"""
Configuration Management Module
Loads and validates screening configuration from config.yaml
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from watchlist.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CLAUSE_WEIGHTS = {
    'phrase': 10.0,
    'whole_name_fuzzy': 6.0,
    'token_set': 5.0,
    'name_term': 3.0,
    'name_fuzzy_term': 2.0,
    'alias_term': 1.5,
    'alias_fuzzy_term': 1.0,
}


@dataclass
class MatchingConfig:
    """Retrieval and scoring parameters"""
    threshold: float = 0.9
    top_n: int = 20
    baseline_weight: float = 1.0
    clause_weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CLAUSE_WEIGHTS))
    whole_name_max_edits: int = 2
    term_max_edits: int = 1
    candidate_coverage_weight: float = 0.25
    token_match_floor: float = 0.5


@dataclass
class InputValidationConfig:
    """Validation of caller-supplied names"""
    name_max_length: int = 1000
    reject_control_characters: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None
    console: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AlgorithmConfig:
    """Algorithm version information"""
    version: str = "1.0.0"
    name: str = "Weighted Candidate Retrieval + Token Coverage Scorer"


class ConfigManager:
    """Manages system configuration"""

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to config.yaml file; when omitted the
                WATCHLIST_CONFIG variable and the working directory are searched
        """
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._raw_config: Dict[str, Any] = {}
        self.matching: MatchingConfig = MatchingConfig()
        self.input_validation: InputValidationConfig = InputValidationConfig()
        self.logging: LoggingConfig = LoggingConfig()
        self.algorithm: AlgorithmConfig = AlgorithmConfig()

        if self.config_path and self.config_path.exists():
            self.load()
        else:
            logger.debug("Config file not found at %s, using defaults", self.config_path)

    def _find_config(self) -> Optional[Path]:
        """Find config.yaml in common locations"""
        env_path = os.getenv("WATCHLIST_CONFIG")
        if env_path:
            return Path(env_path)

        candidate = Path.cwd() / "config.yaml"
        if candidate.exists():
            return candidate
        return None

    def load(self) -> None:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError("Config file must contain a mapping at top level")

        try:
            self._parse_matching()
            self._parse_input_validation()
            self._parse_logging()
            self._parse_algorithm()
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid value in config file: {e}")
        self._validate()
        logger.info("Configuration loaded from %s", self.config_path)

    def _parse_matching(self) -> None:
        """Parse matching configuration"""
        cfg = self._raw_config.get('matching', {}) or {}
        defaults = MatchingConfig()

        weights = dict(DEFAULT_CLAUSE_WEIGHTS)
        weights.update(cfg.get('clause_weights', {}) or {})

        self.matching = MatchingConfig(
            threshold=float(cfg.get('threshold', defaults.threshold)),
            top_n=int(cfg.get('top_n', defaults.top_n)),
            baseline_weight=float(cfg.get('baseline_weight', defaults.baseline_weight)),
            clause_weights=weights,
            whole_name_max_edits=int(cfg.get('whole_name_max_edits', defaults.whole_name_max_edits)),
            term_max_edits=int(cfg.get('term_max_edits', defaults.term_max_edits)),
            candidate_coverage_weight=float(
                cfg.get('candidate_coverage_weight', defaults.candidate_coverage_weight)
            ),
            token_match_floor=float(cfg.get('token_match_floor', defaults.token_match_floor))
        )

    def _parse_input_validation(self) -> None:
        """Parse input validation configuration"""
        cfg = self._raw_config.get('input_validation', {}) or {}
        self.input_validation = InputValidationConfig(
            name_max_length=int(cfg.get('name_max_length', 1000)),
            reject_control_characters=bool(cfg.get('reject_control_characters', True))
        )

    def _parse_logging(self) -> None:
        """Parse logging configuration"""
        cfg = self._raw_config.get('logging', {}) or {}
        self.logging = LoggingConfig(
            level=cfg.get('level', 'INFO'),
            file=cfg.get('file'),
            console=cfg.get('console', True),
            format=cfg.get('format', self.logging.format)
        )

    def _parse_algorithm(self) -> None:
        """Parse algorithm configuration"""
        cfg = self._raw_config.get('algorithm', {}) or {}
        self.algorithm = AlgorithmConfig(
            version=str(cfg.get('version', self.algorithm.version)),
            name=cfg.get('name', self.algorithm.name)
        )

    def _validate(self) -> None:
        """Validate configuration values

        Raises:
            ConfigurationError: If any value is out of range
        """
        m = self.matching
        if not 0.0 <= m.threshold <= 1.0:
            raise ConfigurationError(f"matching.threshold must be within [0, 1], got {m.threshold}")
        if m.top_n < 1:
            raise ConfigurationError(f"matching.top_n must be positive, got {m.top_n}")
        if m.baseline_weight <= 0:
            raise ConfigurationError(f"matching.baseline_weight must be positive, got {m.baseline_weight}")

        unknown = set(m.clause_weights) - set(DEFAULT_CLAUSE_WEIGHTS)
        if unknown:
            raise ConfigurationError(f"Unknown clause weights: {sorted(unknown)}")
        negative = [k for k, v in m.clause_weights.items() if v < 0]
        if negative:
            raise ConfigurationError(f"Clause weights must not be negative: {sorted(negative)}")

        if not 0 <= m.whole_name_max_edits <= 2 or not 0 <= m.term_max_edits <= 2:
            raise ConfigurationError("Fuzzy edit distances must be between 0 and 2")
        if not 0.0 <= m.candidate_coverage_weight <= 0.5:
            raise ConfigurationError(
                f"matching.candidate_coverage_weight must be within [0, 0.5], got {m.candidate_coverage_weight}"
            )
        if not 0.0 <= m.token_match_floor < 1.0:
            raise ConfigurationError(f"matching.token_match_floor must be within [0, 1), got {m.token_match_floor}")

        if self.input_validation.name_max_length < 1:
            raise ConfigurationError("input_validation.name_max_length must be positive")

        if logging.getLevelName(str(self.logging.level).upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
        ):
            raise ConfigurationError(f"Unknown logging level: {self.logging.level}")

    def clause_weight(self, clause: str) -> float:
        """Effective weight of a query clause (baseline x multiplier)"""
        return self.matching.baseline_weight * self.matching.clause_weights[clause]

    @classmethod
    def get_instance(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Get singleton instance of ConfigManager"""
        if cls._instance is None:
            cls._instance = ConfigManager(config_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)"""
        cls._instance = None

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'matching': {
                'threshold': self.matching.threshold,
                'top_n': self.matching.top_n,
                'baseline_weight': self.matching.baseline_weight,
                'clause_weights': dict(self.matching.clause_weights),
                'whole_name_max_edits': self.matching.whole_name_max_edits,
                'term_max_edits': self.matching.term_max_edits,
                'candidate_coverage_weight': self.matching.candidate_coverage_weight,
                'token_match_floor': self.matching.token_match_floor
            },
            'input_validation': {
                'name_max_length': self.input_validation.name_max_length,
                'reject_control_characters': self.input_validation.reject_control_characters
            },
            'logging': {
                'level': self.logging.level,
                'file': self.logging.file,
                'console': self.logging.console,
                'format': self.logging.format
            },
            'algorithm': {
                'version': self.algorithm.version,
                'name': self.algorithm.name
            }
        }


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to get configuration instance"""
    return ConfigManager.get_instance(config_path)


def setup_logging(config: Optional[ConfigManager] = None) -> None:
    """Configure root logging from the logging section

    Only entry points call this; library modules just create module loggers.
    """
    cfg = (config or get_config()).logging
    handlers = []
    if cfg.console:
        handlers.append(logging.StreamHandler())
    if cfg.file:
        log_path = Path(cfg.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))
    logging.basicConfig(
        level=getattr(logging, str(cfg.level).upper(), logging.INFO),
        format=cfg.format,
        handlers=handlers or [logging.NullHandler()],
        force=True
    )
