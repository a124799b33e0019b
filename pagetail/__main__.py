from pagetail.cli import main

main()
