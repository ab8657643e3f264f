"""Line classification and validation engine for security.txt documents."""
