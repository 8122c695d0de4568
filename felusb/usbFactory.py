'''
This module serves to let us open FEL devices by their udev symlink, e.g. a rule with
SYMLINK+="chip-1-fel" pins a physical port so /dev/chip-1-fel always means that port
'''
import logging
import pyudev

from felusb import config
from felusb.errors import DeviceNotFound
from felusb.usbSession import openFelDevice
log = logging.getLogger('felusb')

_udevContext = None

def _getUdevContext():
    global _udevContext
    if _udevContext is None:
        _udevContext = pyudev.Context()
    return _udevContext

def symlinkToBusAddress(symlink):
    '''
    Search udev for the symlink, returning the bus and device numbers. returns None if not found
    '''
    if not symlink.startswith('/'):
        symlink = '/dev/' + symlink
    try:
        dev = pyudev.Devices.from_device_file(_getUdevContext(), symlink) #will throw if not found
    except (pyudev.DeviceNotFoundError, OSError, ValueError) as e:
        log.debug('no udev device for {}: {}'.format(symlink, e))
        return None
    nodes = dev.device_node.split('/') # /dev/bus/usb/BBB/DDD
    return {'bus': int(nodes[-2]), 'address': int(nodes[-1])}

def openBySymlink(symlink, vendorId=config.FEL_VENDOR_ID, productId=config.FEL_PRODUCT_ID, **kwargs):
    '''
    Open the FEL device behind a udev symlink. kwargs go to openFelDevice
    '''
    busAddress = symlinkToBusAddress(symlink)
    if not busAddress:
        message = 'ERROR: no USB device behind {}'.format(symlink)
        log.error(message)
        raise DeviceNotFound(message)
    return openFelDevice(busAddress['bus'], busAddress['address'], vendorId, productId, **kwargs)
