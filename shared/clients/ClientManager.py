from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface


class ClientManager:
    """
    Instantiates the client configured for one client type.

    The engine is read from ``<TYPE>_ENGINE`` and the class
    ``<Prefix><Engine>`` is imported from ``shared.clients.<type>.<engine>``.
    Subclasses set the client type and class prefix. Optional client types
    resolve to None when no engine is configured.
    """

    client_type: str = ""
    class_prefix: str = ""
    required: bool = True

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str | None:
        """
        Reads the engine name from ENV configuration.

        Returns:
            str | None: Capitalised engine name (e.g. "Openai"), or None for an unset optional engine.

        Raises:
            ValueError: If the engine is required but not configured.
        """
        key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(key, default="")
        if not engine:
            if self.required:
                raise ValueError(f"No {self.client_type.upper()} engine specified in configuration ({key}).")
            return None
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface | None:
        """
        Instantiates the client for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        if engine is None:
            self.logging.warning("No %s engine configured. %s tools are disabled.", self.client_type.upper(), self.client_type.capitalize())
            return None

        class_name = f"{self.class_prefix}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.client_type.upper()} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type.upper(), engine)
        return client

    def get_client(self) -> ClientInterface | None:
        """Return the instantiated client (None for an unset optional engine)."""
        return self.client
