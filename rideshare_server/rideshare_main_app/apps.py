from django.apps import AppConfig


class RideshareMainAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'rideshare_main_app'
    verbose_name = 'Booking settlement & reliability'
