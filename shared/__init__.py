"""Shared configuration, errors, logging, retry, validation and models."""
