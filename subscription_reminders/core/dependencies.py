from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_settings(container: ApplicationContainer = Depends(get_container)):
    return container.settings


def get_reminder_scheduler(container: ApplicationContainer = Depends(get_container)):
    return container.reminder_scheduler


def get_confirmation_processor(container: ApplicationContainer = Depends(get_container)):
    return container.confirmation_processor


def get_statistics_service(container: ApplicationContainer = Depends(get_container)):
    return container.statistics_service


def get_subscription_service(container: ApplicationContainer = Depends(get_container)):
    return container.subscription_service
