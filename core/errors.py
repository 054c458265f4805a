from __future__ import annotations


class AttendanceError(Exception):
    """Базовая ошибка приложения (всё, что может показать UI)."""


class ConfigurationError(AttendanceError):
    """Некорректные значения настроек."""


class MissingConfigurationError(ConfigurationError):
    """Обязательная настройка отсутствует или пустая."""


class UploadError(AttendanceError):
    pass


class UnsupportedUploadError(UploadError):
    pass


class UploadParseError(UploadError):
    pass


class RosterStoreError(AttendanceError):
    """Ошибка обращения к таблице (Apps Script): сеть, таймаут, HTTP-статус."""
