from mtubench.cli import main

main()
