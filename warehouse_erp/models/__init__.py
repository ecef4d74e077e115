# warehouse_erp/models/__init__.py
from .warehouse import Warehouse
from .products import Reagent, Consumable
from .invoices import Invoice, InvoiceItem
from .transfers import Transfer, TransferItem
from .stock_out import StockOut, StockOutItem
from .inventory_count import InventoryCount, InventoryCountItem
