import sys
from doxie_upload.cli import main

if __name__ == "__main__":
    sys.exit(main())
