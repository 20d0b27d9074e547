"""Text layout: measurement, line composition, box fitting and batch scaling."""
