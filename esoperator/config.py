from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = "INFO"

    # ==========================================================================
    # Elasticsearch Container Defaults
    # ==========================================================================
    # Image repository used when the cluster spec does not set an explicit image.
    # The cluster version is appended as the tag.
    default_image_repository: str = "docker.elastic.co/elasticsearch/elasticsearch"

    # Memory request applied to the Elasticsearch container when the pod template
    # does not declare one. The JVM default heap is 1Gi, so 2Gi keeps the process
    # from being OOM killed on small nodes.
    default_memory_request: str = "2Gi"

    # Seconds Kubernetes waits between SIGTERM and SIGKILL
    termination_grace_period_seconds: int = 120

    # Size of the default data volume claim template
    default_data_volume_size: str = "1Gi"

    # ==========================================================================
    # Host Tuning
    # ==========================================================================
    # Applies when the cluster spec leaves set_vm_max_map_count unset
    default_set_vm_max_map_count: bool = True
    vm_max_map_count: int = 262144

    def default_image(self, version: str) -> str:
        """Image reference for the given Elasticsearch version."""
        return f"{self.default_image_repository}:{version}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields from .env file
        case_sensitive = False  # Allow lowercase env vars to match uppercase field names

@lru_cache()
def get_settings():
    return Settings()
