from shared.helper.HelperConfig import HelperConfig
from shared.clients.backend.BackendClientInterface import BackendClientInterface

DEFAULT_ENGINE = "simulated"


class BackendClientManager:
    """
    Manager class to instantiate the search backend selected by configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the backend engine from ENV configuration.

        Returns:
            str: The capitalised name of the backend engine (e.g. "Simulated").

        Raises:
            ValueError: If the configured engine name is blank.
        """
        engine = self.helper_config.get_string_val("BACKEND_ENGINE", default=DEFAULT_ENGINE)
        if not engine.strip():
            raise ValueError("No backend engine specified in configuration.")

        #lowercase all and uppercase first letter for better comparison and display
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> BackendClientInterface:
        """
        Initializes the backend client for the engine specified in the configuration.

        Returns:
            BackendClientInterface: An instance of the configured backend.

        Raises:
            ValueError: If the engine is unknown or its class does not implement BackendClientInterface.
        """
        engine = self._get_engine_from_env()
        className = f"BackendClient{engine}"
        # try to import the class from shared.clients.backend.{engine}
        try:
            module = __import__(
                f"shared.clients.backend.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported backend engine specified: '{engine}'. Error: {e}")

        if not issubclass(client_class, BackendClientInterface):
            raise ValueError(f"Backend class '{className}' does not implement BackendClientInterface.")

        client = client_class(helper_config=self.helper_config)
        self.logging.info("Instantiated backend client for engine: %s", engine)
        return client

    def get_client(self) -> BackendClientInterface:
        """
        Returns the instantiated backend client.

        Returns:
            BackendClientInterface: The backend client instance.
        """
        return self.client
