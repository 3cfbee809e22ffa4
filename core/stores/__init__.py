"""Counter and invoice stores behind the CounterStore / InvoiceStore protocols."""

from core.stores.base import CounterStore, InvoiceStore
from core.stores.inmemory import InMemoryCounterStore, InMemoryInvoiceStore
