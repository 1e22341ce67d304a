# config_management.py
"""
Configuration Management for the Weekly Safety Report System
Resolves Firebase credentials, the storage namespace and UI settings once at startup
"""

import os
import re
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Mapping

from error_handling import ConfigInvalidError

logger = logging.getLogger(__name__)

DEFAULT_APP_ID = 'safety-check-demo-v1'
PLACEHOLDER_PREFIX = 'YOUR_'

# Firestore path segments must stay within this character set
APP_ID_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9_-]')

# Firebase web config key -> environment variable
FIREBASE_ENV_VARS = {
    'apiKey': 'FIREBASE_API_KEY',
    'authDomain': 'FIREBASE_AUTH_DOMAIN',
    'projectId': 'FIREBASE_PROJECT_ID',
    'storageBucket': 'FIREBASE_STORAGE_BUCKET',
    'messagingSenderId': 'FIREBASE_MESSAGING_SENDER_ID',
    'appId': 'FIREBASE_APP_ID',
}


def sanitize_app_id(raw_app_id: str) -> str:
    """Replace characters that are unsafe in a Firestore path segment with underscores"""
    return APP_ID_UNSAFE_CHARS.sub('_', raw_app_id)


@dataclass(frozen=True)
class FirebaseSettings:
    api_key: Optional[str] = None
    auth_domain: Optional[str] = None
    project_id: Optional[str] = None
    storage_bucket: Optional[str] = None
    messaging_sender_id: Optional[str] = None
    app_id: Optional[str] = None

    @classmethod
    def from_web_config(cls, web_config: Mapping[str, Any]) -> 'FirebaseSettings':
        return cls(
            api_key=web_config.get('apiKey'),
            auth_domain=web_config.get('authDomain'),
            project_id=web_config.get('projectId'),
            storage_bucket=web_config.get('storageBucket'),
            messaging_sender_id=web_config.get('messagingSenderId'),
            app_id=web_config.get('appId'),
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.api_key) and not str(self.api_key).startswith(PLACEHOLDER_PREFIX)


@dataclass(frozen=True)
class AppConfig:
    """Immutable configuration produced by the single resolution step"""
    firebase: FirebaseSettings
    app_id: str = DEFAULT_APP_ID
    initial_auth_token: Optional[str] = None
    embedded: bool = False
    page_title: str = '주간 안전보건 점검 시스템'
    page_icon: str = '🦺'
    layout: str = 'wide'
    alert_timeout_seconds: float = 5.0
    timezone: str = 'Asia/Seoul'
    refresh_interval_seconds: float = 2.0
    request_timeout_seconds: float = 30.0
    debug_mode: bool = False
    logging: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.firebase.is_valid

    def require_valid(self):
        """Raise ConfigInvalidError when credentials are missing or placeholders"""
        if not self.is_valid:
            if self.embedded:
                raise ConfigInvalidError('Firebase 초기화 오류')
            raise ConfigInvalidError('Firebase 설정(API KEY)이 유효하지 않습니다.')


class ConfigManager:
    """Centralized configuration management"""

    def __init__(self, config_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ
        self.config_file = config_file or self.environ.get('SAFETY_APP_CONFIG', 'config.json')
        self.config = self._load_default_config()
        self._load_user_config()

    def _load_default_config(self) -> Dict[str, Any]:
        """Load default configuration values"""
        return {
            # Application Configuration
            "app": {
                "name": "Construction Safety Management System",
                "version": "1.0",
                "debug_mode": False
            },

            # Firebase web configuration (placeholders until provided)
            "firebase": {
                "apiKey": "YOUR_API_KEY",
                "authDomain": "YOUR_AUTH_DOMAIN",
                "projectId": "YOUR_PROJECT_ID",
                "storageBucket": "YOUR_STORAGE_BUCKET",
                "messagingSenderId": "YOUR_MESSAGING_SENDER_ID",
                "appId": "YOUR_APP_ID",
                "request_timeout": 30.0
            },

            # Storage namespace
            "namespace": {
                "default_app_id": DEFAULT_APP_ID
            },

            # UI Configuration
            "ui": {
                "page_title": "주간 안전보건 점검 시스템",
                "page_icon": "🦺",
                "layout": "wide",
                "refresh_interval_seconds": 2.0
            },

            "alerts": {
                "timeout_seconds": 5.0
            },

            "locale": {
                "timezone": "Asia/Seoul"
            },

            # Logging Configuration
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "file_path": "logs/safety_app.log",
                "max_file_size_mb": 10,
                "backup_count": 5
            }
        }

    def _load_user_config(self):
        """Load user-specific configuration from file"""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    user_config = json.load(f)
                self._merge_config(self.config, user_config)
                logger.info(f"Loaded user configuration from {self.config_file}")
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load user config {self.config_file}: {e}")

    def _merge_config(self, base: Dict, override: Dict):
        """Recursively merge configuration dictionaries"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get(self, key_path: str, default=None):
        """Get configuration value using dot notation (e.g., 'alerts.timeout_seconds')"""
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def _resolve_firebase(self):
        """
        Pick the Firebase web config.
        A pre-parsed host config (FIREBASE_CONFIG) wins; otherwise the file
        values overridden by individual environment variables are used.
        Returns (settings, embedded).
        """
        embedded_raw = self.environ.get('FIREBASE_CONFIG')
        if embedded_raw is not None:
            try:
                web_config = json.loads(embedded_raw)
                if not isinstance(web_config, dict):
                    raise ValueError("FIREBASE_CONFIG must be a JSON object")
            except ValueError as e:
                logger.error(f"Firebase config parse error: {e}")
                return FirebaseSettings(), True
            return FirebaseSettings.from_web_config(web_config), True

        web_config = dict(self.get('firebase', {}))
        for key, env_var in FIREBASE_ENV_VARS.items():
            if self.environ.get(env_var):
                web_config[key] = self.environ[env_var]
        return FirebaseSettings.from_web_config(web_config), False

    def _resolve_app_id(self) -> str:
        raw_app_id = self.environ.get('APP_ID')
        if raw_app_id:
            return sanitize_app_id(raw_app_id)
        return sanitize_app_id(self.get('namespace.default_app_id', DEFAULT_APP_ID))

    def resolve(self) -> AppConfig:
        """Run the one-time resolution step and return the immutable configuration"""
        firebase, embedded = self._resolve_firebase()
        app_config = AppConfig(
            firebase=firebase,
            app_id=self._resolve_app_id(),
            initial_auth_token=self.environ.get('INITIAL_AUTH_TOKEN') or None,
            embedded=embedded,
            page_title=self.get('ui.page_title', '주간 안전보건 점검 시스템'),
            page_icon=self.get('ui.page_icon', '🦺'),
            layout=self.get('ui.layout', 'wide'),
            alert_timeout_seconds=float(self.get('alerts.timeout_seconds', 5.0)),
            timezone=self.get('locale.timezone', 'Asia/Seoul'),
            refresh_interval_seconds=float(self.get('ui.refresh_interval_seconds', 2.0)),
            request_timeout_seconds=float(self.get('firebase.request_timeout', 30.0)),
            debug_mode=bool(self.get('app.debug_mode', False)),
            logging=dict(self.get('logging', {})),
        )
        if not app_config.is_valid:
            logger.warning("Firebase configuration is incomplete")
        logger.info(f"Configuration resolved (app_id={app_config.app_id}, embedded={embedded})")
        return app_config

    def validate_config(self) -> Dict[str, Any]:
        """Validate configuration and return validation report"""
        validation_report = {
            'valid': True,
            'errors': [],
            'warnings': []
        }

        firebase, _ = self._resolve_firebase()
        if not firebase.is_valid:
            validation_report['errors'].append("Firebase API key is missing or still a placeholder")
            validation_report['valid'] = False
        if not firebase.project_id or str(firebase.project_id).startswith(PLACEHOLDER_PREFIX):
            validation_report['warnings'].append("Firebase project id is not set")

        timeout = self.get('alerts.timeout_seconds', 5.0)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            validation_report['errors'].append("alerts.timeout_seconds must be a positive number")
            validation_report['valid'] = False

        raw_app_id = self.environ.get('APP_ID')
        if raw_app_id and sanitize_app_id(raw_app_id) != raw_app_id:
            validation_report['warnings'].append(
                f"APP_ID '{raw_app_id}' was sanitized to '{sanitize_app_id(raw_app_id)}'"
            )

        return validation_report


def load_app_config(config_file: Optional[str] = None,
                    environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Resolve configuration once; callers thread the result everywhere it is needed"""
    manager = ConfigManager(config_file=config_file, environ=environ)
    validation = manager.validate_config()
    for warning in validation['warnings']:
        logger.warning(f"Configuration warning: {warning}")
    for error in validation['errors']:
        logger.error(f"Configuration error: {error}")
    return manager.resolve()
