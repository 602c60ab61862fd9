from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("invoice-automation", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Azure Document Intelligence
    az_di_endpoint: str | None = Field(default=None, alias="AZ_DI_ENDPOINT")
    az_di_api_key: str | None = Field(default=None, alias="AZ_DI_API_KEY")
    az_di_model_id: str = Field("prebuilt-invoice", alias="AZ_DI_MODEL_ID")

    # Azure OpenAI (classification)
    llm_base_url: str | None = Field(default=None, alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_deployment: str = Field("gpt-4o", alias="LLM_DEPLOYMENT")
    llm_api_version: str = Field("2024-06-01", alias="LLM_API_VERSION")
    llm_temperature: float = Field(0.3, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(200, alias="LLM_MAX_TOKENS")
    llm_top_p: float = Field(0.95, alias="LLM_TOP_P")

    # Blob storage
    azure_storage_connection_string: str | None = Field(default=None, alias="AZURE_STORAGE_CONNECTION_STRING")
    azure_storage_container_name: str = Field("invoices", alias="AZURE_STORAGE_CONTAINER_NAME")
    blob_sas_ttl_minutes: int = Field(60, alias="BLOB_SAS_TTL_MINUTES")

    # Record storage (Cosmos DB, SQLite when Cosmos is not configured)
    cosmos_endpoint: str | None = Field(default=None, alias="COSMOS_ENDPOINT")
    cosmos_key: str | None = Field(default=None, alias="COSMOS_KEY")
    cosmos_database_name: str = Field("InvoiceDB", alias="COSMOS_DATABASE_NAME")
    cosmos_container_name: str = Field("Invoices", alias="COSMOS_CONTAINER_NAME")
    records_db_path: str = Field("invoices.db", alias="RECORDS_DB_PATH")

    # Service Bus (optional)
    service_bus_connection_string: str | None = Field(default=None, alias="SERVICE_BUS_CONNECTION_STRING")
    service_bus_entity: str = Field("invoice-events", alias="SERVICE_BUS_ENTITY")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    # Upload validation
    allowed_extensions: str = Field(".pdf,.png,.jpg,.jpeg,.tiff,.bmp", alias="ALLOWED_EXTENSIONS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def allowed_extension_list(self) -> list[str]:
        return [ext.strip().lower() for ext in self.allowed_extensions.split(",") if ext.strip()]

settings = Settings()
