from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"
    verbose_name = "Marketplace orders"

    def ready(self) -> None:
        from modules.orders.handlers import SUBSCRIPTIONS
        from shared.infrastructure.bus import event_bus

        for event_class, handler in SUBSCRIPTIONS:
            event_bus.subscribe(event_class, handler)
