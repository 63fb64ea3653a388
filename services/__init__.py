"""Пакет прикладных сервисов back-office.

Подмодули не импортируются на уровне пакета, чтобы ``import services``
не тянул за собой pandas и openpyxl.

Импортируйте нужные подмодули напрямую, например:
    from services.bookings import list_booking_rows
    from services.commission import compute_commission
"""

__all__: list[str] = []
