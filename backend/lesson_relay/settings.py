from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List

class Settings(BaseSettings):
	# Which adapter serves generation: "ollama", "openai" or "groq"
	llm_backend: str = Field(default="ollama", validation_alias="LLM_BACKEND")

	# Ollama (local generation)
	ollama_base_url: str = Field(default="http://localhost:11434", validation_alias="OLLAMA_BASE_URL")
	ollama_model: str = Field(default="llama3.2:latest", validation_alias="OLLAMA_MODEL")
	# False schedules pulls in the background and answers "initiated" right away
	ollama_pull_blocking: bool = Field(default=True, validation_alias="OLLAMA_PULL_BLOCKING")

	# OpenAI chat completions
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	openai_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
	openai_model: str = Field(default="gpt-3.5-turbo", validation_alias="OPENAI_MODEL")

	# Groq (OpenAI-compatible endpoint)
	groq_api_key: str | None = Field(default=None, validation_alias="GROQ_API_KEY")
	groq_base_url: str = Field(default="https://api.groq.com/openai/v1", validation_alias="GROQ_BASE_URL")
	groq_model: str = Field(default="llama-3.1-8b-instant", validation_alias="GROQ_MODEL")

	# Default response mode for the generate routes; a request may override it
	stream_responses: bool = Field(default=False, validation_alias="STREAM_RESPONSES")

	# Timeouts in seconds. Streams use the idle value as a per-read timeout.
	request_timeout_s: float = Field(default=60, validation_alias="REQUEST_TIMEOUT_S")
	pull_timeout_s: float = Field(default=300, validation_alias="PULL_TIMEOUT_S")
	stream_idle_timeout_s: float = Field(default=120, validation_alias="STREAM_IDLE_TIMEOUT_S")

	# Server
	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
	host: str = Field(default="0.0.0.0", validation_alias="HOST")
	port: int = Field(default=8081, validation_alias="PORT")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	def cors_origin_list(self) -> List[str]:
		return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
