'''
Allwinner FEL protocol over USB: open a device in FEL mode, read and write its memory, run code.
'''
from felusb.config import FEL_VENDOR_ID, FEL_PRODUCT_ID
from felusb.errors import FelUsbError, DeviceNotFound, PermissionDenied, DeviceMismatch, ClaimFailed, \
    EndpointNotFound, TransferFailed, ProtocolDesync
from felusb.usbSession import init, shutdown, openFelDevice, FelSession, listDevices, waitForDevice
from felusb.fel import FelVersion, getVersion, readMemory, writeMemory, writeMemoryWithProgress, execute, \
    getSerialNumber
from felusb.progress import Progress

open = openFelDevice
