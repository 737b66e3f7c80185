from shared.helper.HelperConfig import HelperConfig
from shared.helper.engine_loader import load_engine_class
from shared.models.review import ReviewSettings
from shared.store.DraftStoreInterface import DraftStoreInterface


class DraftStoreManager:
    """Builds the draft store selected by DRAFT_STORE_ENGINE ("memory" unless set)."""

    def __init__(self, helper_config: HelperConfig, settings: ReviewSettings):
        self.helper_config = helper_config
        self.settings = settings
        self.logging = helper_config.get_logger()
        self.store = self._initialize_store()

    def _initialize_store(self) -> DraftStoreInterface:
        engine = self.helper_config.get_string_val("DRAFT_STORE_ENGINE", default="memory")
        store_class = load_engine_class("shared.store", "DraftStore", engine, "draft store")
        store = store_class(helper_config=self.helper_config, settings=self.settings)
        self.logging.debug("Instantiated draft store for engine: %s", store.get_engine_name())
        return store

    def get_store(self) -> DraftStoreInterface:
        return self.store
