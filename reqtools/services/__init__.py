# Services package for reqtools
