"""
Módulo de documentos de factura (PDF)

- renderer: PDF con reportlab
- storage: backend local (mount estático /invoices) o MinIO
- service: generación post-commit, nunca revierte la factura
- tasks: regeneración y conciliación con Celery
"""
