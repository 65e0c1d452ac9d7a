"""Flask UI and command line front ends for the altwords engine."""
