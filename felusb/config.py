import os
#USB identifiers for an Allwinner SoC in FEL mode
FEL_VENDOR_ID = 0x1f3a
FEL_PRODUCT_ID = 0xefe8

CHIP_USB_INTERFACE = 0 #FEL exposes a single data interface

#Blocking timeout for each bulk transfer, in milliseconds. Each session copies this value, so tests can use shorter ones.
USB_TIMEOUT = 10000

#MAX_BULK_SEND and USB_TIMEOUT are related. The slowest SoCs move about 64 KiB/sec, so 512 KiB goes through in 8 seconds or less.
MAX_BULK_SEND = 512 * 1024
#Smaller chunks when reporting progress, so a slow transfer still updates about every two seconds
PROGRESS_BULK_SEND = 128 * 1024

#how long waitForDevice polls by default, in seconds
POLLING_TIMEOUT = 60
POLLING_INTERVAL = 1.0

VERBOSE = os.environ.get('FELUSB_VERBOSE', '') not in ('', '0') #whether more details/errors appear in console

#Log files go here. Defaults to ./logs under the current directory
LOG_DIR = os.environ.get('FELUSB_LOG_DIR', os.path.join(os.getcwd(), 'logs'))
LOG_TO_FILE = os.environ.get('FELUSB_LOG_TO_FILE', '') not in ('', '0') #init() attaches the file logs from LogManager when set
