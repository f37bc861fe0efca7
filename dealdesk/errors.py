"""Domain errors raised while reconciling a webhook delivery."""


class WebhookProcessingError(Exception):
    """A delivery could not be applied; the processor records it as failed."""
