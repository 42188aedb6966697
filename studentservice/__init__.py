"""Student records and vaccination tracking: a Flask HTTP API and a RabbitMQ bulk-upload worker."""

__version__ = "0.1.0"