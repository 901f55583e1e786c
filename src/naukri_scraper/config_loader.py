"""
Configuration loader for the Naukri scraper
Reads and validates settings.yaml, then layers environment overrides on top
"""

import os
import re
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Dotted config key -> environment variables checked in order.
ENV_OVERRIDES = {
    'credentials.email': ('NAUKRI_EMAIL', 'EMAIL'),
    'credentials.password': ('NAUKRI_PASSWORD', 'PASSWORD'),
    'search.query': ('JOB_SEARCH_QUERY',),
    'search.location': ('LOCATION',),
    'search.experience': ('EXPERIENCE',),
    'search.internal_limit': ('INTERNAL_JOBS_LIMIT',),
    'search.external_limit': ('EXTERNAL_JOBS_LIMIT',),
    'search.max_pages': ('MAX_PAGES_TO_SEARCH',),
    'storage.mongodb_uri': ('MONGODB_URI',),
    'storage.database': ('DB_NAME',),
    'storage.collection': ('COLLECTION_NAME',),
}


class ConfigValidationError(ValueError):
    """Raised when configuration fails invariant validation."""
    pass


def _validate_non_negative(value: Any, field: str) -> None:
    """Validate that a numeric value is non-negative."""
    if value is not None and float(value) < 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be non-negative, got {value}"
        )


def _validate_positive(value: Any, field: str) -> None:
    """Validate that a numeric value is positive (> 0)."""
    if value is not None and float(value) <= 0:
        raise ConfigValidationError(
            f"Invalid config: '{field}' must be positive (> 0), got {value}"
        )


def _validate_min_max_pair(min_val: Any, max_val: Any, min_field: str, max_field: str) -> None:
    """Validate that min_val <= max_val for a delay/range pair."""
    if min_val is not None and max_val is not None:
        if float(min_val) > float(max_val):
            raise ConfigValidationError(
                f"Invalid config: '{min_field}' ({min_val}) must be <= '{max_field}' ({max_val})"
            )


def sanitize_for_filename(value: str) -> str:
    """'Data Analyst' -> 'data_analyst'"""
    return re.sub(r"[^a-z0-9]", "_", (value or "").lower())


class ConfigLoader:
    """Loads and validates configuration from YAML file"""

    def __init__(self, config_path: str = "config/settings.yaml", use_env: bool = True):
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self.use_env = use_env
        self._load()

    def _load(self) -> None:
        """Load config from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"✓ Config loaded from {self.config_path}")
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise

        if self.use_env:
            self._apply_env_overrides()
        self._validate_invariants()

    def _apply_env_overrides(self) -> None:
        for key, env_names in ENV_OVERRIDES.items():
            for env_name in env_names:
                value = os.environ.get(env_name)
                if value:
                    self.set(key, value)
                    logger.debug("Config %s overridden from $%s", key, env_name)
                    break

    def _validate_invariants(self) -> None:
        """Validate configuration invariants. Raises ConfigValidationError on failure."""
        # Search limits
        _validate_non_negative(self.get('search.internal_limit'), 'search.internal_limit')
        _validate_non_negative(self.get('search.external_limit'), 'search.external_limit')
        _validate_non_negative(self.get('search.max_pages'), 'search.max_pages')

        # Card pacing
        min_delay = self.get('browser.min_delay')
        max_delay = self.get('browser.max_delay')
        _validate_non_negative(min_delay, 'browser.min_delay')
        _validate_non_negative(max_delay, 'browser.max_delay')
        _validate_min_max_pair(min_delay, max_delay, 'browser.min_delay', 'browser.max_delay')

        # Page pacing
        page_min = self.get('browser.page_delay_min')
        page_max = self.get('browser.page_delay_max')
        _validate_non_negative(page_min, 'browser.page_delay_min')
        _validate_non_negative(page_max, 'browser.page_delay_max')
        _validate_min_max_pair(page_min, page_max, 'browser.page_delay_min', 'browser.page_delay_max')

        # Fixed waits
        for key in ('browser.sleep_interval', 'browser.long_sleep_interval',
                    'browser.settle_delay', 'browser.retry_backoff'):
            _validate_non_negative(self.get(key), key)

        # Browser timeouts (must be positive)
        _validate_positive(self.get('browser.page_timeout'), 'browser.page_timeout')
        _validate_positive(self.get('browser.navigation_timeout'), 'browser.navigation_timeout')
        _validate_positive(self.get('browser.launch_timeout'), 'browser.launch_timeout')
        _validate_positive(self.get('browser.short_wait'), 'browser.short_wait')

        # Driver start attempts
        _validate_positive(self.get('browser.max_retries'), 'browser.max_retries')

        logger.debug("✓ Config invariants validated")

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot notation (e.g., 'search.query')"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set config value by dot notation, creating sections as needed"""
        keys = key.split('.')
        node = self.config
        for k in keys[:-1]:
            if not isinstance(node.get(k), dict):
                node[k] = {}
            node = node[k]
        node[keys[-1]] = value

    def override(self, key: str, value: Any) -> None:
        """Apply a command-line override; None means 'not given'."""
        if value is None:
            return
        self.set(key, value)
        self._validate_invariants()

    # === Search Config ===

    def get_query(self) -> str:
        return str(self.get('search.query', 'Data Analyst'))

    def get_location(self) -> str:
        return str(self.get('search.location', 'Bangalore'))

    def get_experience(self) -> str:
        """Minimum years filter as it appears in the URL; '0' disables it"""
        value = self.get('search.experience', '0')
        return str(value).strip() if value is not None else '0'

    def get_max_pages(self) -> int:
        return int(self.get('search.max_pages', 2))

    def get_internal_limit(self) -> int:
        return int(self.get('search.internal_limit', 15))

    def get_external_limit(self) -> int:
        return int(self.get('search.external_limit', 5))

    # === Credentials ===

    def get_email(self) -> str:
        return (self.get('credentials.email') or '').strip()

    def get_password(self) -> str:
        return self.get('credentials.password') or ''

    def has_credentials(self) -> bool:
        return bool(self.get_email() and self.get_password())

    # === Site Config ===

    def get_base_url(self) -> str:
        return str(self.get('site.base_url', 'https://www.naukri.com')).rstrip('/')

    def get_login_url(self) -> str:
        return self.get('site.login_url', f"{self.get_base_url()}/nlogin/login")

    def get_fallback_login_url(self) -> str:
        return self.get('site.fallback_login_url', 'https://login.naukri.com/nLogin/Login.php')

    # === Browser Config ===

    def is_headless(self) -> bool:
        return bool(self.get('browser.headless', True))

    def use_stealth(self) -> bool:
        return bool(self.get('browser.use_stealth', True))

    def get_browser_channel(self) -> str:
        return self.get('browser.channel', '') or ''

    def get_browser_executable_path(self) -> str:
        return self.get('browser.executable_path', '') or ''

    def get_user_agent(self) -> str:
        return self.get('browser.user_agent', '') or ''

    def get_launch_timeout(self) -> int:
        """Browser launch timeout in milliseconds"""
        return int(float(self.get('browser.launch_timeout', 60)) * 1000)

    def get_page_timeout(self) -> int:
        """Default element timeout in milliseconds"""
        return int(float(self.get('browser.page_timeout', 25)) * 1000)

    def get_navigation_timeout(self) -> int:
        """Navigation timeout in milliseconds"""
        return int(float(self.get('browser.navigation_timeout', 45)) * 1000)

    def get_short_wait(self) -> int:
        """Per-locator wait in milliseconds"""
        return int(float(self.get('browser.short_wait', 7)) * 1000)

    def get_sleep_interval(self) -> float:
        return float(self.get('browser.sleep_interval', 2))

    def get_long_sleep_interval(self) -> float:
        return float(self.get('browser.long_sleep_interval', 5))

    def get_settle_delay(self) -> float:
        """Pause after a results page load for client-side rendering"""
        return float(self.get('browser.settle_delay', 7))

    def get_min_delay(self) -> float:
        return float(self.get('browser.min_delay', 0.3))

    def get_max_delay(self) -> float:
        return float(self.get('browser.max_delay', 0.7))

    def get_page_delay_min(self) -> float:
        return float(self.get('browser.page_delay_min', 2))

    def get_page_delay_max(self) -> float:
        return float(self.get('browser.page_delay_max', 3))

    def get_max_retries(self) -> int:
        """Driver start attempts before the run is declared unrecoverable"""
        return int(self.get('browser.max_retries', 3))

    def get_retry_backoff(self) -> float:
        return float(self.get('browser.retry_backoff', 7))

    # === Session Config ===

    def get_cookie_file(self) -> Path:
        return Path(self.get('session.cookie_file', 'naukri_cookies.json'))

    # === Storage Config ===

    def is_storage_enabled(self) -> bool:
        return bool(self.get('storage.enabled', True))

    def get_mongodb_uri(self) -> str:
        return self.get('storage.mongodb_uri', 'mongodb://localhost:27017')

    def get_database_name(self) -> str:
        return self.get('storage.database', 'naukri_jobs_db')

    def get_collection_name(self) -> str:
        return self.get('storage.collection', 'jobs')

    # === Output Config ===

    def _render(self, template: str) -> str:
        now = datetime.now()
        return (
            template
            .replace('{query}', sanitize_for_filename(self.get_query()))
            .replace('{location}', sanitize_for_filename(self.get_location()))
            .replace('{timestamp}', now.strftime('%Y%m%d_%H%M%S'))
            .replace('{date}', now.strftime('%Y-%m-%d'))
        )

    def get_output_path(self, file_type: str = 'json') -> Path:
        """Get output file path for the given artifact type"""
        defaults = {
            'json': 'output/naukri_jobs_{query}_{location}.json',
            'markdown': 'output/naukri_jobs_{query}_{location}.md',
        }
        template = self.get(f'output.{file_type}_file', defaults.get(file_type, f'output/jobs.{file_type}'))
        return Path(self._render(template))

    def is_markdown_enabled(self) -> bool:
        return bool(self.get('output.write_markdown', False))

    def get_screenshot_dir(self) -> Path:
        return Path(self.get('output.screenshot_dir', 'output/screenshots'))

    def get_summary_path(self) -> Optional[Path]:
        template = self.get('output.summary_file', 'output/run_summary_{timestamp}.json')
        return Path(self._render(template)) if template else None

    # === Logging Config ===

    def get_log_level(self) -> str:
        return str(self.get('logging.level', 'INFO')).upper()

    def get_log_file(self) -> Path:
        template = self.get('logging.log_file', 'logs/scrape_log_{query}_{location}_{date}.log')
        return Path(self._render(template))

    def __repr__(self) -> str:
        return (
            f"<Config: query={self.get_query()!r}, location={self.get_location()!r}, "
            f"pages={self.get_max_pages()}>"
        )


# Convenience function
def load_config(config_path: str = "config/settings.yaml", use_env: bool = True) -> ConfigLoader:
    """Load configuration from file"""
    return ConfigLoader(config_path, use_env=use_env)
