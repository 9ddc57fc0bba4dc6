# DB Description Updater - Database Package
