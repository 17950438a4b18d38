from legatio.cli import main

main()
