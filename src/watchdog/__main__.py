from src.watchdog.watchdog_service import main

main()
