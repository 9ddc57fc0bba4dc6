# DB Description Updater - Utilities
