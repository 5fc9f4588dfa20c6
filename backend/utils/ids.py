# Typed identifiers so user, vendor, product and order ids are not mixed up
from typing import NewType

UserId = NewType("UserId", int)
VendorId = NewType("VendorId", int)
ProductId = NewType("ProductId", int)
OrderId = NewType("OrderId", int)
