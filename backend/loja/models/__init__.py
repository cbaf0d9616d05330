from .catalog import Product, Customer, Supplier
from .purchases import Purchase, PurchaseLine
from .loans import Loan, LoanLine
from .sales import Sale, SaleLine, Installment, INSTALLMENT_PENDING, INSTALLMENT_PAID

__all__ = [
    'Product', 'Customer', 'Supplier',
    'Purchase', 'PurchaseLine',
    'Loan', 'LoanLine',
    'Sale', 'SaleLine', 'Installment',
    'INSTALLMENT_PENDING', 'INSTALLMENT_PAID',
]
