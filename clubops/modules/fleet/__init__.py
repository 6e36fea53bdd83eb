"""Модуль Fleet: оборудование клуба, обслуживание и инциденты."""
