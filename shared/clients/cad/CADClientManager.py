from shared.helper.HelperConfig import HelperConfig
from shared.clients.cad.CADClientInterface import CADClientInterface


class CADClientManager:
    """Manager class to instantiate the configured CAD gateway client."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """Read the CAD engine name from env configuration.

        Returns:
            str: Capitalised engine name (e.g. "Onshape").
        """
        engine = self.helper_config.get_string_val("CAD_ENGINE", default="onshape")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> CADClientInterface:
        """Instantiate the CAD client for the configured engine.

        Returns:
            CADClientInterface: The instantiated client.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"CADClient{engine}"
        try:
            module = __import__(
                f"shared.clients.cad.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported CAD engine '%s'. Error: %s" % (engine, e))
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated CAD client for engine: %s", engine)
        return client

    def get_client(self) -> CADClientInterface:
        """Return the instantiated CAD client."""
        return self.client
