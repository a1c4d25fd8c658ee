from novatrade.config import Settings, get_settings
from novatrade.providers.base import NullOracle, PriceOracle
from novatrade.providers.gemini import GeminiOracle


def get_oracle(settings: Settings = None) -> PriceOracle:
    """
    Oracle loader / factory.

    Reads ORACLE_PROVIDER from config and returns an instance of the selected oracle.
    This is the single place that knows about concrete oracles.
    """
    settings = settings or get_settings()
    provider_name = settings.oracle_provider.strip().upper()

    if provider_name in ("", "NONE"):
        return NullOracle()

    if provider_name == "GEMINI":
        return GeminiOracle(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout_s=settings.oracle_timeout_seconds,
        )

    raise ValueError(f"Unknown ORACLE_PROVIDER='{settings.oracle_provider}'. Expected: NONE, GEMINI")
