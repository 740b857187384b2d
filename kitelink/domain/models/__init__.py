"""Domain models: endpoints, errors, configuration and response envelopes."""
