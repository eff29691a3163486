import os
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

def _env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    return default if v is None else v.strip().lower() in ("1", "true", "yes", "on")

class Settings(BaseModel):
    token: str = Field(default_factory=lambda: os.getenv("DISCORD_TOKEN",""))
    guild_id: int = int(os.getenv("GUILD_ID","0") or 0)
    sync_scope: str = os.getenv("SYNC_SCOPE", "both")
    data_dir: str = os.getenv("DATA_DIR","./data")
    db_file: str = os.getenv("DB_FILE","valinor.db")
    log_level: str = os.getenv("LOG_LEVEL","INFO")

    # Politics and War (GraphQL)
    pnw_graphql_url: str = os.getenv("PNW_GRAPHQL_URL","https://api.politicsandwar.com/graphql")
    pnw_timeout_s: float = float(os.getenv("PNW_TIMEOUT_S","30"))

    # Surveillance des guerres
    monitoring_enabled: bool = _env_flag("MONITORING_ENABLED", True)
    poll_interval_s: int = int(os.getenv("POLL_INTERVAL_S","300"))
    send_timeout_s: float = float(os.getenv("DISCORD_SEND_TIMEOUT_S","15"))
    war_retention_days: int = int(os.getenv("WAR_RETENTION_DAYS","30"))

    # API REST (dashboard)
    api_enabled: bool = _env_flag("API_ENABLED", False)
    api_host: str = os.getenv("API_HOST","127.0.0.1")
    api_port: int = int(os.getenv("API_PORT","3001"))
    api_token: str = Field(default_factory=lambda: os.getenv("API_TOKEN",""))

settings = Settings()
