from glray.cli import main

main()
