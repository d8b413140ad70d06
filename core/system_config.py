import logging
import os
from pathlib import Path

from core.linesheet_generator.utils.math_utils import safe_float_convert, safe_int_convert

# Define Project Root (Assuming this file is in core/system_config.py)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


class SystemConfig:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(SystemConfig, cls).__new__(cls)
            cls._instance._load_env_file()  # Load .env variables
        return cls._instance

    def _load_env_file(self):
        """Manually load .env file into os.environ if not already set."""
        env_path = PROJECT_ROOT / ".env"
        if env_path.exists():
            try:
                with open(env_path, "r", encoding="utf-8") as f:
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith("#"):
                            continue
                        if "=" in line:
                            key, value = line.split("=", 1)
                            key = key.strip()
                            value = value.strip().strip("'").strip('"')
                            # OS env var takes precedence
                            if key and key not in os.environ:
                                os.environ[key] = value
                logger.info("Loaded .env file for environment configuration.")
            except OSError as e:
                logger.warning(f"Failed to parse .env file: {e}")

    # ========== Paths ==========

    @property
    def templates_dir(self) -> Path:
        return self._resolve_path("templates", "templates", env_key="TEMPLATES_DIR")

    @property
    def template_name(self) -> str:
        return os.getenv("LINESHEET_TEMPLATE") or "B2B_Linesheet_BASE.xlsx"

    @property
    def template_path(self) -> Path:
        return self.templates_dir / self.template_name

    @property
    def run_log_dir(self) -> Path:
        return self._resolve_path("run_log", "run_log", env_key="RUN_LOG_DIR")

    @property
    def log_level(self) -> str:
        return os.getenv("LOG_LEVEL") or "INFO"

    # ========== Behaviour Flags ==========

    @property
    def dev_mode(self) -> bool:
        """Permissive template fallback. Never enable in production."""
        return self._flag("LINESHEET_DEV_MODE")

    @property
    def mock_data(self) -> bool:
        """Serve fixed sample data instead of calling the commerce API."""
        return self._flag("LINESHEET_MOCK_DATA")

    # ========== Image Fetching ==========

    @property
    def image_timeout(self) -> float:
        return safe_float_convert(os.getenv("LINESHEET_IMAGE_TIMEOUT"), default=10.0) or 10.0

    @property
    def image_workers(self) -> int:
        return max(1, safe_int_convert(os.getenv("LINESHEET_IMAGE_WORKERS"), default=4))

    @property
    def image_size_suffix(self) -> str:
        return os.getenv("LINESHEET_IMAGE_SIZE") or "_200x200"

    # ========== Commerce API ==========

    @property
    def shopify_store_url(self) -> str:
        return (os.getenv("SHOPIFY_STORE_URL") or "").rstrip("/")

    @property
    def shopify_api_token(self) -> str:
        return os.getenv("SHOPIFY_ADMIN_API_TOKEN") or ""

    @property
    def shopify_api_version(self) -> str:
        return os.getenv("SHOPIFY_API_VERSION") or "2024-01"

    # ========== HTTP ==========

    @property
    def allowed_origin(self) -> str:
        """Extra CORS origin besides *.myshopify.com stores."""
        return os.getenv("ALLOWED_ORIGIN") or ""

    def _flag(self, env_key: str) -> bool:
        return (os.getenv(env_key) or "").strip().lower() in _TRUTHY

    def _resolve_path(self, key: str, default_relative: str, env_key: str = None) -> Path:
        check_env = env_key if env_key else key.upper()
        env_val = os.getenv(check_env)

        if env_val:
            path_obj = Path(env_val)
            if path_obj.is_absolute():
                return path_obj.resolve()
            return (PROJECT_ROOT / path_obj).resolve()

        return (PROJECT_ROOT / default_relative).resolve()


# Singleton instance
sys_config = SystemConfig()
