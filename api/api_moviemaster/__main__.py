from .moviemaster import main

main()
