"""School IT help-desk ticket tracker."""
