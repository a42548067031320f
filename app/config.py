"""
Beyblade Stats Tracker settings
"""
from datetime import date

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase settings"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase anon key")

    class Config:
        env_prefix = ""
        case_sensitive = False


class StatsConfig(BaseSettings):
    """Statistics settings"""

    # Stadium sides were only recorded from this date on
    side_tracking_cutover: date = Field(default=date(2025, 9, 13), description="Stadium side cutover date")
    recent_rounds_limit: int = Field(default=10, description="Rounds shown in the recent rounds list")
    search_limit: int = Field(default=20, description="Maximum player search results")

    class Config:
        env_prefix = "STATS_"
        case_sensitive = False


class ServerConfig(BaseSettings):
    """API server settings"""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=7272, description="Bind port")
    reload: bool = Field(default=False, description="Auto reload on code changes")

    class Config:
        env_prefix = "SERVER_"
        case_sensitive = False


# Global settings instances
supabase_config = SupabaseConfig()
stats_config = StatsConfig()
server_config = ServerConfig()
