from xhark.cli import main

main()
