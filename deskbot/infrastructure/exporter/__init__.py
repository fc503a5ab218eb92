from .order_exporter import OrderExporter, ExportResult, HEADERS

__all__ = ["OrderExporter", "ExportResult", "HEADERS"]
