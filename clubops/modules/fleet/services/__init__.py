"""Сервисы модуля Fleet."""
