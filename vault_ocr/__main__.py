import sys

from vault_ocr.cli import main

sys.exit(main())
