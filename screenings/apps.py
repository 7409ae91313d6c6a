from django.apps import AppConfig
from django.conf import settings


class ScreeningsConfig(AppConfig):
    name = "screenings"
    verbose_name = "Screenings"

    def ready(self):
        from .catalog import ScreeningCatalog

        conf = settings.MOVIENIGHT
        self.catalog = ScreeningCatalog(conf["CONFIG_PATH"], seed_path=conf.get("SEED_CONFIG_PATH"))
