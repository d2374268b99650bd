"""Internal libraries for the user registration service.

Modules include configuration, logging, the shared validation gate,
RabbitMQ helpers, the user store, the welcome notifier, the message
processor and Prometheus metrics.
"""
