'''
Exceptions raised by the FEL USB stack, and the helper that turns libusb errors into them.

Setup faults (anything before a session is usable) end that open attempt. Session faults
(a failed bulk transfer, a bad acknowledgement) leave the session unusable; the caller has
to close it and open a new one.
'''
import logging
log = logging.getLogger('felusb')

SETUP_STAGE = 'setup'
SESSION_STAGE = 'session'

class FelUsbError(Exception):
    '''
    Base class. code is the libusb error code when there is one
    '''
    stage = SETUP_STAGE

    def __init__(self, message, code=None):
        super(FelUsbError, self).__init__(message)
        self.message = message
        self.code = code

class DeviceNotFound(FelUsbError):
    pass

class PermissionDenied(FelUsbError):
    pass

class DeviceMismatch(FelUsbError):
    pass

class ClaimFailed(FelUsbError):
    pass

class EndpointNotFound(FelUsbError):
    pass

class TransferFailed(FelUsbError):
    stage = SESSION_STAGE

class ProtocolDesync(FelUsbError):
    stage = SESSION_STAGE


def errorCode(err):
    '''
    libusb error code of a usb1.USBError, None for anything else
    '''
    return getattr(err, 'value', None)

def describe(err, caption=None):
    '''
    Diagnostic line for a libusb error, e.g. "usb_bulk_send() ERROR -7: LIBUSB_ERROR_TIMEOUT [-7]"
    '''
    message = 'ERROR {}: {}'.format(errorCode(err), err)
    if caption:
        message = caption + ' ' + message
    return message

def usbError(err, caption, exceptionClass=FelUsbError, fatal=True):
    '''
    Report a libusb failure.
    :param err: the usb1.USBError that was caught
    :param caption: the failing step
    :param exceptionClass: what to raise when fatal
    :param fatal: if False, only log a warning and return the message
    '''
    message = describe(err, caption)
    if not fatal:
        log.warning(message)
        return message
    log.error(message)
    raise exceptionClass(message, errorCode(err)) from err
