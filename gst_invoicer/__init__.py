"""GST invoicing backend: companies, clients, invoices and document exports."""

__version__ = "1.0.0"
