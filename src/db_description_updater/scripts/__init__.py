# DB Description Updater - Command-line scripts
