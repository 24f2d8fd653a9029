from typing import Optional
from pydantic_settings import BaseSettings

TEST_BYPASS_ENVS = ("dev", "test")


class AdminSettings(BaseSettings):
    ENV: str = "dev"                # "dev" / "test" / "staging" / "prod"
    ENABLE_ADMIN: bool = True
    ADMIN_SECRET: Optional[str] = None
    SERVICE_NAME: str = "eventauth"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def allows_test_bypass(self) -> bool:
        # staging and any unknown ENV behave like production here
        return self.ENV.lower() in TEST_BYPASS_ENVS


admin_config = AdminSettings()
