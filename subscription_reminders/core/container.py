from dataclasses import dataclass

from .clock import Clock, utc_now
from .config import Settings
from ..domain.ports.notifications import ReminderNotifier
from ..domain.ports.persistence import PersistenceGateway
from ..services.confirmation_processor import ConfirmationProcessor
from ..services.confirmation_tokens import ConfirmationTokenManager
from ..services.email_service import EmailService
from ..services.reminder_scheduler import ReminderScheduler
from ..services.statistics import ReminderStatisticsService
from ..services.subscription_service import SubscriptionService


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    notifier: ReminderNotifier
    token_manager: ConfirmationTokenManager
    reminder_scheduler: ReminderScheduler
    confirmation_processor: ConfirmationProcessor
    statistics_service: ReminderStatisticsService
    subscription_service: SubscriptionService


def build_email_service(settings: Settings) -> EmailService:
    return EmailService(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        from_name=settings.smtp_from_name,
        base_url=settings.frontend_base_url,
        timeout_seconds=settings.smtp_timeout_seconds,
    )


def build_container(
    settings: Settings,
    persistence: PersistenceGateway,
    notifier: ReminderNotifier,
    *,
    clock: Clock = utc_now,
) -> ApplicationContainer:
    reminder_settings = settings.reminders
    token_manager = ConfirmationTokenManager(persistence, expiry_days=reminder_settings.token_expiry_days)
    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        notifier=notifier,
        token_manager=token_manager,
        reminder_scheduler=ReminderScheduler(
            persistence,
            notifier,
            token_manager,
            reminder_settings,
            clock=clock,
        ),
        confirmation_processor=ConfirmationProcessor(persistence, token_manager, clock=clock),
        statistics_service=ReminderStatisticsService(persistence, clock=clock),
        subscription_service=SubscriptionService(persistence, clock=clock),
    )
