"""HTTP and command-line front ends for sheetmatch."""
