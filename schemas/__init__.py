# Schemas package: request bodies in validation, responses in api_models
from .validation import parse_body
