"Hotfix workflow for sites hosted on Pantheon"

__version__ = '0.1.0'
