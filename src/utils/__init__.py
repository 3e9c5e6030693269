"""Shared configuration, credential and logging helpers."""
