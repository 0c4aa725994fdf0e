from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "meta-llama/llama-3-8b-instruct"
    openrouter_model: str = ""

    # Generation budgets
    narrative_max_tokens: int = 1024
    candidates_max_tokens: int = 2048
    annotation_max_tokens: int = 512
    candidate_target_count: int = 10

    # Image search (browser automation)
    image_search_url_template: str = "https://www.google.com/search?q={query}&tbm=isch"
    image_search_keywords: str = "painting biblical art"
    image_search_navigation_timeout_ms: int = 20000
    image_search_selector_timeout_ms: int = 15000
    image_min_dimension: int = 100
    image_result_index: int = 1  # index 0 is usually the provider logo
    placeholder_image_url: str = "https://placehold.co/600x400?text=Image+Not+Found"
    browser_headless: bool = True
    illustrator_max_parallel: int = 1

    # Request handling
    query_timeout_seconds: float = 300.0

    # Query stats
    stats_persist_path: str = ".cache/stats/query_stats.json"
    stats_recent_limit: int = 10

    # Analytics report
    analytics_report_enabled: bool = True
    analytics_report_hour_utc: int = 0
    analytics_report_top_n: int = 10

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
