from typing import Optional, Sequence

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from owm_weather_mock.errors import ConfigurationError


class ProxyUserSettings(BaseModel):
    app_id: Optional[str] = Field(None, validation_alias=AliasChoices("appId", "app_id"))


class ProxySettings(BaseModel):
    enabled: bool = False
    url: str = "https://api.openweathermap.org"
    timeout: float = Field(10.0, gt=0)
    user: ProxyUserSettings = Field(default_factory=ProxyUserSettings)


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class Settings(BaseSettings):
    """Options come from WEATHER_* env vars (e.g. WEATHER_PROXY__USER__APPID),
    a .env file, or dotted command-line flags (--proxy.user.appId)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WEATHER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    log_level: str = "INFO"
    log_file: str = "logs/weather_mock.log"

    def validate_startup(self) -> None:
        if self.proxy.enabled and not self.proxy.user.app_id:
            raise ConfigurationError(
                "Proxy user app ID not provided. Proxying will NOT work. Please start the app in local mode, "
                "or provide an API key with the command line argument --proxy.user.appId=[your API key]"
            )


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    if argv:
        return Settings(_cli_parse_args=list(argv), _cli_prog_name="owm-weather-mock")
    return Settings()
