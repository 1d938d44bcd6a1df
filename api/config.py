"""
ChargeSource API Configuration
Environment variable loading with validation and safe defaults
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ConfigError(Exception):
    """Configuration validation error"""
    pass


class Config:
    """Application configuration with environment variable validation"""

    # Supabase configuration
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str

    # Application configuration
    APP_ENV: str = "development"
    APP_PORT: int = 8000
    APP_DEBUG: bool = True
    APP_LOG_LEVEL: str = "INFO"

    # Quote & catalogue configuration
    MAX_COMPARISON_PRODUCTS: int = 4
    CATALOG_PAGE_LIMIT: int = 500

    def __init__(self):
        """Initialize and validate configuration"""
        self._load_required_env_vars()
        self._load_optional_env_vars()
        self._validate_config()

    def _load_required_env_vars(self) -> None:
        """Load required environment variables"""
        required_vars = {
            "SUPABASE_URL": "Supabase project URL",
            "SUPABASE_ANON_KEY": "Supabase anonymous key",
            "SUPABASE_SERVICE_ROLE_KEY": "Supabase service role key",
        }

        missing_vars = []
        for var_name, description in required_vars.items():
            value = os.getenv(var_name)
            if not value:
                missing_vars.append(f"{var_name} ({description})")
            else:
                setattr(self, var_name, value)

        if missing_vars:
            raise ConfigError(
                "Missing required environment variables:\n"
                + "\n".join(f"  - {var}" for var in missing_vars)
            )

    def _load_optional_env_vars(self) -> None:
        """Load optional environment variables with defaults"""
        self.APP_ENV = os.getenv("APP_ENV", self.APP_ENV)
        self.APP_PORT = int(os.getenv("APP_PORT", str(self.APP_PORT)))
        self.APP_DEBUG = os.getenv("APP_DEBUG", str(self.APP_DEBUG)).lower() in (
            "true",
            "1",
            "yes",
        )
        self.APP_LOG_LEVEL = os.getenv("APP_LOG_LEVEL", self.APP_LOG_LEVEL).upper()

        self.MAX_COMPARISON_PRODUCTS = int(
            os.getenv("MAX_COMPARISON_PRODUCTS", str(self.MAX_COMPARISON_PRODUCTS))
        )
        self.CATALOG_PAGE_LIMIT = int(
            os.getenv("CATALOG_PAGE_LIMIT", str(self.CATALOG_PAGE_LIMIT))
        )

    def _validate_config(self) -> None:
        """Validate configuration values"""
        if not self.SUPABASE_URL.startswith(("http://", "https://")):
            raise ConfigError(
                "Invalid SUPABASE_URL: must start with http:// or https://"
            )

        if self.APP_LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Invalid APP_LOG_LEVEL: {self.APP_LOG_LEVEL}")

        if self.MAX_COMPARISON_PRODUCTS < 1:
            raise ConfigError("MAX_COMPARISON_PRODUCTS must be at least 1")

        if self.CATALOG_PAGE_LIMIT < 1:
            raise ConfigError("CATALOG_PAGE_LIMIT must be at least 1")

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.APP_ENV.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.APP_ENV.lower() == "development"


# Global configuration instance
try:
    config = Config()
except ConfigError as e:
    print(f"Configuration Error: {e}")
    print("\nPlease ensure all required environment variables are set.")
    print("See .env.example for details.")
    raise
