from ccswitch.cli import main

main()
