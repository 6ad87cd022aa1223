import sys

from k8sbench.frontend import main

if __name__ == "__main__":
    sys.exit(main())
